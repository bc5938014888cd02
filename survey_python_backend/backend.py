import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import FileResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.ext.asyncio import AsyncEngine

from survey_python_backend.chat_api import router as chat_router
from survey_python_backend.config import (
    CORS_ALLOW_ORIGINS,
    DATABASE_URL,
    HEALTH_MESSAGE,
    LANDING_DOCUMENT,
    LOG_LEVEL,
    PORT,
    STATIC_DIR,
)
from survey_python_backend.db_session import build_engine, build_session_factory, init_models, redacted_url
from survey_python_backend.errors import error_response, register_exception_handlers
from survey_python_backend.middleware import configure_middleware
from survey_python_backend.services.conversation_store import ConversationStore, InMemoryConversationStore
from survey_python_backend.services.local_llm_client import LocalLLMClient, get_local_client
from survey_python_backend.survey_api import router as survey_router

logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("survey_backend")


def create_app(
    engine: Optional[AsyncEngine] = None,
    conversation_store: Optional[ConversationStore] = None,
    llm_client: Optional[LocalLLMClient] = None,
    static_dir: Optional[Path] = None,
) -> FastAPI:
    """
    Build the survey FastAPI app.

    Every collaborator can be injected; defaults come from the environment
    (DATABASE_URL, LOCAL_LLM_*, STATIC_DIR).
    """
    engine = engine if engine is not None else build_engine(DATABASE_URL)
    static_dir = Path(static_dir) if static_dir is not None else STATIC_DIR

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("[INFO] Preparing database at %s", redacted_url(str(engine.url)))
        try:
            await init_models(engine)
        except Exception:
            logger.exception("[ERROR] Failed to initialize database during startup")
            raise
        logger.info("[INFO] Database ready.")
        yield
        logger.info("[INFO] Disposing database engine...")
        await engine.dispose()

    app = FastAPI(title="Drafting study survey backend", lifespan=lifespan)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.conversation_store = conversation_store if conversation_store is not None else InMemoryConversationStore()
    app.state.llm_client = llm_client if llm_client is not None else get_local_client()

    configure_middleware(app, CORS_ALLOW_ORIGINS)
    register_exception_handlers(app)

    app.include_router(survey_router)
    app.include_router(chat_router)

    landing_page = static_dir / LANDING_DOCUMENT

    @app.get("/health", response_class=PlainTextResponse)
    async def health():
        return HEALTH_MESSAGE

    @app.get("/", include_in_schema=False)
    async def landing():
        if not landing_page.is_file():
            return error_response(404, "Not found")
        return FileResponse(landing_page)

    # Must be mounted last: "/" swallows every path not matched above.
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
        logger.info("[INFO] Serving static files from %s", static_dir)
    else:
        logger.warning("[WARN] Static directory %s not found; serving API only", static_dir)

    return app


survey_app = create_app()


if __name__ == "__main__":
    logger.info("Server running on http://localhost:%d", PORT)
    uvicorn.run(survey_app, host="0.0.0.0", port=PORT)
