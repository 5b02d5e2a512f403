"""
Chat Service

Server side of the chat proxy: turns a user message, the persona and the recent
conversation into a chat completion request.
"""

import logging
from typing import Dict, List, Optional

from learnverse_tutor.agents import build_system_prompt, get_persona
from learnverse_tutor.llm_client import LLMClient

logger = logging.getLogger(__name__)


class ChatService:
    """Single-call chat: system prompt + bounded history + user message."""

    HISTORY_WINDOW = 10
    TEMPERATURE = 0.7
    MAX_TOKENS = 1000

    def __init__(self, llm: LLMClient):
        self.llm = llm

    def build_messages(
        self,
        message: str,
        agent: str,
        history: List[Dict[str, str]],
        reference_files: Optional[List[str]] = None,
    ) -> List[Dict[str, str]]:
        """
        Assemble the completion request.

        Args:
            message: Latest user message
            agent: Persona id
            history: Role-tagged prior turns, oldest first
            reference_files: Uploaded file names to mention in the system prompt

        Returns:
            Messages list for the LLM
        """
        system_prompt = build_system_prompt(agent, reference_files)
        recent = history[-self.HISTORY_WINDOW:] if history else []
        return [
            {"role": "system", "content": system_prompt},
            *recent,
            {"role": "user", "content": message},
        ]

    async def reply(
        self,
        message: str,
        agent: str,
        history: List[Dict[str, str]],
        reference_files: Optional[List[str]] = None,
    ) -> str:
        persona = get_persona(agent)
        messages = self.build_messages(message, persona.id, history, reference_files)
        logger.info(
            f"💬 [ChatService] Sending request for {persona.id} "
            f"(history={len(messages) - 2}, message_length={len(message)})"
        )
        response = await self.llm.complete(messages, temperature=self.TEMPERATURE, max_tokens=self.MAX_TOKENS)
        logger.info(f"💬 [ChatService] Received response ({len(response)} chars)")
        return response
