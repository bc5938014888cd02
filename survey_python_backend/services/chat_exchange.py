"""
Chat exchange: one drafting request turned into a model reply plus an audit trail.

Order of side effects for a single exchange, all under the conversation's lock:
1. ensure the conversation exists (system instruction first)
2. append the user turn (draft, then request)
3. call the language model with the whole history
4. append the assistant reply
5. write the user/assistant audit rows with one shared timestamp

A gateway failure stops at step 3: the unanswered user turn stays in the
history and no audit rows are written.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from survey_python_backend.models import utc_timestamp
from survey_python_backend.services.conversation_store import ConversationStore
from survey_python_backend.services.local_llm_client import CHAT_FAILED_MESSAGE, LocalLLMClient
from survey_python_backend.services.survey_persistence import insert_chat_messages

logger = logging.getLogger(__name__)


def format_user_turn(draft: Optional[str], request: str) -> str:
    return f"Draft:\n{draft or ''}\n\nUser request:\n{request}"


class ChatExchange:
    def __init__(self, store: ConversationStore, llm_client: LocalLLMClient, db: AsyncSession):
        self.store = store
        self.llm_client = llm_client
        self.db = db

    async def run(self, participant_id: str, scenario: str, message: str,
                  draft: Optional[str] = None) -> str:
        """
        Run one exchange and return the reply text.

        Raises:
            GatewayError: the model call failed; nothing was persisted
            PersistenceError: the reply was produced but the audit write failed
        """
        user_content = format_user_turn(draft, message)

        async with self.store.lock(participant_id, scenario):
            conversation = self.store.ensure(participant_id, scenario)
            self.store.append(participant_id, scenario, {"role": "user", "content": user_content})
            logger.info(
                "Chat turn for participant %s, scenario %s (%d turns in context)",
                participant_id,
                scenario,
                len(conversation),
            )

            reply = await self.llm_client.chat(self.store.history(participant_id, scenario))

            self.store.append(participant_id, scenario, {"role": "assistant", "content": reply})
            timestamp = utc_timestamp()

        await insert_chat_messages(
            self.db,
            participant_id=participant_id,
            scenario=scenario,
            user_content=user_content,
            assistant_content=reply,
            timestamp=timestamp,
            public_message=CHAT_FAILED_MESSAGE,
        )
        return reply
