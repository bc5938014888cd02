"""
Error taxonomy for the survey backend and its HTTP mapping.

Every failure a handler surfaces is one of:
- ValidationError: a required field is missing or the body is malformed (400)
- GatewayError: the language-model call failed or returned malformed data (500)
- PersistenceError: a database write failed (500)

Each error carries a public message that is safe to return to the client.
Internal detail stays in the chained exception and the server log.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SurveyBackendError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SurveyBackendError):
    status_code = status.HTTP_400_BAD_REQUEST


class GatewayError(SurveyBackendError):
    pass


class PersistenceError(SurveyBackendError):
    pass


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _handle_survey_error(request: Request, exc: SurveyBackendError):
    if exc.status_code >= 500:
        logger.error(
            "[ERROR] %s %s failed with %s: %s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc.__cause__ or exc.message,
        )
    else:
        logger.info("[VALIDATION] %s %s rejected: %s", request.method, request.url.path, exc.message)
    return error_response(exc.status_code, exc.message)


async def _handle_request_validation_error(request: Request, exc: RequestValidationError):
    logger.info("[VALIDATION] %s %s malformed body: %s", request.method, request.url.path, exc.errors())
    return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request body")


async def _handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("[ERROR] %s %s raised an unexpected error", request.method, request.url.path, exc_info=exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Render the error taxonomy as ``{"error": <message>}`` JSON bodies."""
    app.add_exception_handler(SurveyBackendError, _handle_survey_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)
