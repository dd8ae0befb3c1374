from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from typing import List
import logging

from aceinbase.core.errors import NotInitializedError
from aceinbase.models.enums import Subject, Difficulty
from aceinbase.prompts.quiz_prompts import build_system_prompt

logger = logging.getLogger(__name__)

class ConversationSession:
    """
    The single live dialogue with the quiz model for one play-through.
    - Keeps the system instruction plus every exchanged message as history
    - Sends one user message at a time and returns the raw model text
    - A failed send leaves the history exactly as it was before the call
    """

    def __init__(self, llm, system_prompt: str):
        self.llm = llm
        self.messages: List[BaseMessage] = [SystemMessage(content=system_prompt)]
        self.is_open = True

    async def send(self, user_text: str) -> str:
        """
        Forward learner text to the model and wait for its reply.

        Input: user_text (str)
        Output: str (raw model text, markers included)
        Raises: NotInitializedError if the session was closed,
                ProviderError if the provider call fails
        """
        if not self.is_open:
            raise NotInitializedError("Chat session not started. Open a session first.")

        pending = self.messages + [HumanMessage(content=user_text)]
        reply = await self.llm.generate_response(pending)
        self.messages = pending + [AIMessage(content=reply)]
        return reply

    def close(self):
        self.is_open = False
        self.messages = []


def open_session(llm, subject: Subject, difficulty: Difficulty, topic: str) -> ConversationSession:
    """Build the system prompt and start a fresh session on ``llm``."""
    session = ConversationSession(llm, build_system_prompt(subject, difficulty, topic))
    logger.info(f"Opened quiz session: {subject.value} / {difficulty.value} / {topic}")
    return session
