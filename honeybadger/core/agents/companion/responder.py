"""
Companion reply generation.

Replies come from the language model when one is configured and answers in
time; anything else (no key, timeout, provider error, empty answer) falls
back to a motivation phrase from the companion's personality, so the
companion always says something.
"""
import asyncio
import logging
from typing import Any, Optional

from langchain_core.messages import HumanMessage, SystemMessage

from honeybadger.core.agents.companion.personalities import (
    PersonalityProfile,
    PhraseCategory,
    pick_phrase,
)
from honeybadger.core.agents.companion.prompt import COMPANION_CONTEXT_TEMPLATE
from honeybadger.core.config import settings
from honeybadger.core.llm_config import LLMFactory

logger = logging.getLogger(__name__)


class CompanionResponder:
    """Generates in-character companion replies to chat messages."""

    def __init__(self, llm: Optional[Any] = None, timeout: Optional[float] = None):
        # llm: anything exposing ``ainvoke(messages)``; built lazily from settings when omitted
        self._llm = llm
        self.timeout = timeout if timeout is not None else settings.COMPANION_LLM_TIMEOUT_SECONDS

    def _get_llm(self) -> Optional[Any]:
        if self._llm is None and LLMFactory.is_configured():
            self._llm = LLMFactory.create_llm(
                temperature=settings.COMPANION_TEMPERATURE,
                max_tokens=settings.COMPANION_MAX_TOKENS,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._llm

    @staticmethod
    def fallback(profile: PersonalityProfile) -> str:
        return pick_phrase(profile, PhraseCategory.MOTIVATION)

    @staticmethod
    def build_messages(companion, profile: PersonalityProfile, user_message: str, challenge, user) -> list:
        system_prompt = COMPANION_CONTEXT_TEMPLATE.format(
            directive=profile.directive,
            companion_name=companion.name,
            companion_level=companion.level,
            user_first_name=user.first_name or user.username,
            challenge_title=challenge.title,
            challenge_description=challenge.description,
        )
        return [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_message),
        ]

    async def generate(self, companion, profile: PersonalityProfile, user_message: str, challenge, user) -> str:
        """
        Produce a reply for ``user_message``. Never raises.

        Args:
            companion: Companion speaking
            profile: Its resolved personality
            user_message: What the human said
            challenge: Challenge the conversation belongs to
            user: Human who sent the message

        Returns:
            Reply text
        """
        try:
            llm = self._get_llm()
            if llm is None:
                logger.debug("No language model configured, using phrase bank")
                return self.fallback(profile)

            messages = self.build_messages(companion, profile, user_message, challenge, user)
            response = await asyncio.wait_for(llm.ainvoke(messages), timeout=self.timeout)
            content = getattr(response, "content", None)
            if isinstance(content, str) and content.strip():
                return content.strip()

            logger.warning(f"Empty companion reply for challenge {challenge.id}, using phrase bank")

        except asyncio.TimeoutError:
            logger.warning(f"Companion reply timed out after {self.timeout}s, using phrase bank")
        except Exception as e:
            logger.error(f"Error generating companion reply: {e}")

        return self.fallback(profile)
