from __future__ import annotations

from typing import Any, List

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage
from langchain_google_genai import (
    ChatGoogleGenerativeAI,
    HarmBlockThreshold,
    HarmCategory,
)

from agent.errors import ResponseBlockedError
from config.settings import Settings


SAFETY_SETTINGS = {
    HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
}


def build_chat_model(settings: Settings) -> ChatGoogleGenerativeAI:
    if not settings.google_api_key:
        raise RuntimeError(
            "GOOGLE_API_KEY not set. Please configure it in environment or .env"
        )

    return ChatGoogleGenerativeAI(
        model=settings.gemini_model,
        google_api_key=settings.google_api_key,
        temperature=settings.temperature,
        top_p=settings.top_p,
        top_k=settings.top_k,
        max_output_tokens=settings.max_output_tokens,
        safety_settings=SAFETY_SETTINGS,
        # single attempt per call; agent.retry owns backoff
        max_retries=1,
    )


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    parts: List[str] = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type", "text") == "text":
            parts.append(part.get("text") or "")
    return "".join(parts)


class ChatSession:
    """Stateful conversation against a chat model.

    Each call sends the accumulated history plus the new user turn. The
    turn and the model's answer are only kept once the call succeeds, so a
    retried send never shows up twice.
    """

    def __init__(self, llm: BaseChatModel) -> None:
        self._llm = llm
        self.history: List[BaseMessage] = []

    async def send_message(self, text: str) -> str:
        pending = self.history + [HumanMessage(content=text)]
        result = await self._llm.ainvoke(pending)

        finish_reason = str((result.response_metadata or {}).get("finish_reason") or "")
        if finish_reason.upper().endswith("SAFETY"):
            raise ResponseBlockedError(f"Response was blocked due to SAFETY ({finish_reason})")

        self.history = pending + [result]
        return _content_text(result.content)


def build_chat_session(settings: Settings) -> ChatSession:
    return ChatSession(build_chat_model(settings))
