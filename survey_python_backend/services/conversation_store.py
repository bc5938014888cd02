"""
Per-(participant, scenario) chat history held for the lifetime of the process.

Handlers receive the store through a FastAPI dependency and only use the
ConversationStore interface. Nothing here survives a restart.
"""

import asyncio
from collections import defaultdict
from typing import Dict, List, Tuple

Turn = Dict[str, str]
ConversationKey = Tuple[str, str]

SYSTEM_INSTRUCTION_TEMPLATE = (
    "You are assisting a multilingual student in drafting academic communication for this scenario: {scenario}.\n"
    "Provide tone guidance and revisions only.\n"
    "Do not engage in unrelated conversation.\n"
    "Keep responses concise and focused on clarity, professionalism, and tone improvement."
)


def system_instruction(scenario: str) -> Turn:
    return {"role": "system", "content": SYSTEM_INSTRUCTION_TEMPLATE.format(scenario=scenario)}


class ConversationStore:
    """Interface for conversation history backends."""

    def ensure(self, participant_id: str, scenario: str) -> List[Turn]:
        raise NotImplementedError

    def append(self, participant_id: str, scenario: str, turn: Turn) -> None:
        raise NotImplementedError

    def history(self, participant_id: str, scenario: str) -> List[Turn]:
        raise NotImplementedError

    def lock(self, participant_id: str, scenario: str) -> asyncio.Lock:
        raise NotImplementedError


class InMemoryConversationStore(ConversationStore):
    """
    Unbounded in-memory store.

    Every conversation starts with the scenario's system instruction.
    ``lock`` hands out one asyncio.Lock per key; the chat handler holds it
    across the whole exchange so that user/assistant turns stay paired even
    when two requests for the same key overlap at the gateway await.
    """

    def __init__(self) -> None:
        self._conversations: Dict[ConversationKey, List[Turn]] = {}
        self._locks: Dict[ConversationKey, asyncio.Lock] = defaultdict(asyncio.Lock)

    def ensure(self, participant_id: str, scenario: str) -> List[Turn]:
        key = (participant_id, scenario)
        if key not in self._conversations:
            self._conversations[key] = [system_instruction(scenario)]
        return self._conversations[key]

    def append(self, participant_id: str, scenario: str, turn: Turn) -> None:
        self.ensure(participant_id, scenario).append(dict(turn))

    def history(self, participant_id: str, scenario: str) -> List[Turn]:
        return [dict(turn) for turn in self._conversations.get((participant_id, scenario), [])]

    def lock(self, participant_id: str, scenario: str) -> asyncio.Lock:
        return self._locks[(participant_id, scenario)]

    def __len__(self) -> int:
        return len(self._conversations)
