"""
Chat endpoint: proxies drafting requests to the local language model.

The conversation store and model client are read from ``app.state`` through
dependencies, so tests can swap either without patching modules.
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from survey_python_backend.db_session import get_async_session
from survey_python_backend.schemas import ChatRequest, ChatResponse
from survey_python_backend.services.chat_exchange import ChatExchange
from survey_python_backend.services.conversation_store import ConversationStore
from survey_python_backend.services.local_llm_client import LocalLLMClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


def get_conversation_store(request: Request) -> ConversationStore:
    return request.app.state.conversation_store


def get_llm_client(request: Request) -> LocalLLMClient:
    return request.app.state.llm_client


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    db: AsyncSession = Depends(get_async_session),
    store: ConversationStore = Depends(get_conversation_store),
    llm_client: LocalLLMClient = Depends(get_llm_client),
):
    """
    Send one drafting request to the model and return its reply.

    Request Body
    ------------
    ChatRequest {userId: str, message: str, scenario: str, draft: str}

    Returns
    -------
    ChatResponse {reply: str}

    Raises
    ------
    ValidationError (400)
        If userId, message or scenario is missing.
    GatewayError (500)
        If the model call fails. The body is the generic ``Chat failed``.
    """
    logger.info("=== Chat request from participant %s, scenario %s ===", request.participant_id, request.scenario)
    request.require()
    exchange = ChatExchange(store, llm_client, db)
    reply = await exchange.run(
        participant_id=request.participant_id,
        scenario=request.scenario,
        message=request.message,
        draft=request.draft,
    )
    return ChatResponse(reply=reply)
