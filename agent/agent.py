from __future__ import annotations

import logging
from typing import Callable, List, Optional, Protocol, Sequence

from agent.core.cache import ResponseCache
from agent.core.prompt import (
    PersonaDescriptor,
    create_system_prompt,
    final_turn,
    replay_turn,
    seed_turn,
)
from agent.core.sanitizer import clean_message, strip_reply_label
from agent.retry import RetryPolicy, retry_with_delay
from agent.session import build_chat_session
from config.settings import Settings


logger = logging.getLogger(__name__)


class ChatSessionLike(Protocol):
    async def send_message(self, text: str) -> str: ...


SessionFactory = Callable[[Settings], ChatSessionLike]


async def _send(session: ChatSessionLike, text: str, policy: RetryPolicy) -> str:
    async def operation() -> str:
        return await session.send_message(text)

    return await retry_with_delay(operation, policy.max_attempts, policy.base_delay)


async def replay_conversation(
    session: ChatSessionLike,
    messages: Sequence[str],
    system_prompt: str,
    persona_name: str,
    max_history_length: int = 10,
    policy: Optional[RetryPolicy] = None,
) -> str:
    """Seed a fresh session with the persona, replay recent turns, answer the last one.

    Sends are awaited one after another; the session is order dependent.
    Any failure that survives the retry policy aborts the whole replay.
    """
    if not messages:
        raise ValueError("At least one message is required")
    policy = policy or RetryPolicy()

    await _send(session, seed_turn(system_prompt, persona_name), policy)

    recent: List[str] = list(messages[-max_history_length:])
    for message in recent[:-1]:
        await _send(session, replay_turn(message, persona_name), policy)

    reply = await _send(session, final_turn(recent[-1]), policy)
    return strip_reply_label(reply)


class ChatAgent:
    """Owns the reply cache and turns one chat request into one reply."""

    def __init__(
        self,
        persona: PersonaDescriptor,
        settings: Settings,
        session_factory: Optional[SessionFactory] = None,
        cache: Optional[ResponseCache] = None,
    ) -> None:
        self.persona = persona
        self.settings = settings
        self.cache = cache if cache is not None else ResponseCache()
        self._session_factory = session_factory or build_chat_session
        self._policy = RetryPolicy(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
        )

    async def reply(self, raw_messages: Sequence[str]) -> str:
        cleaned = [clean_message(m) for m in raw_messages]
        if not cleaned:
            raise ValueError("At least one message is required")

        last = cleaned[-1]
        cached = self.cache.get(last)
        if cached is not None:
            logger.info("Cache hit for message of %s chars", len(last))
            return cached

        session = self._session_factory(self.settings)
        reply = await replay_conversation(
            session,
            cleaned,
            create_system_prompt(self.persona),
            self.settings.persona_name,
            max_history_length=self.settings.max_history_length,
            policy=self._policy,
        )
        self.cache.set(last, reply)
        logger.info(
            "Replied to %s messages (%s replayed) with %s chars",
            len(cleaned),
            min(len(cleaned), self.settings.max_history_length),
            len(reply),
        )
        return reply
