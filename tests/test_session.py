import asyncio

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage, HumanMessage

from agent.core.prompt import PersonaLoadError, load_persona
from agent.errors import ResponseBlockedError
from agent.session import ChatSession, _content_text, build_chat_model


class ScriptedModel:
    def __init__(self, results):
        self.results = list(results)
        self.seen = []

    async def ainvoke(self, messages):
        self.seen.append(list(messages))
        item = self.results.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def test_session_accumulates_history():
    session = ChatSession(FakeListChatModel(responses=["first", "second"]))

    assert asyncio.run(session.send_message("hello")) == "first"
    assert asyncio.run(session.send_message("again")) == "second"

    assert [type(m) for m in session.history] == [HumanMessage, AIMessage, HumanMessage, AIMessage]
    assert session.history[2].content == "again"


def test_failed_send_leaves_history_untouched():
    model = ScriptedModel([RuntimeError("network down"), AIMessage(content="ok")])
    session = ChatSession(model)

    with pytest.raises(RuntimeError):
        asyncio.run(session.send_message("hi"))
    assert session.history == []

    assert asyncio.run(session.send_message("hi")) == "ok"
    assert len(model.seen[1]) == 1
    assert len(session.history) == 2


def test_safety_finish_reason_raises():
    blocked = AIMessage(content="", response_metadata={"finish_reason": "SAFETY"})
    session = ChatSession(ScriptedModel([blocked]))

    with pytest.raises(ResponseBlockedError, match="SAFETY"):
        asyncio.run(session.send_message("something rude"))
    assert session.history == []


def test_content_text_joins_parts():
    assert _content_text("plain") == "plain"
    assert _content_text(["a", {"type": "text", "text": "b"}, {"type": "image_url", "image_url": "x"}]) == "ab"


def test_build_chat_model_requires_api_key(settings):
    settings.google_api_key = None
    with pytest.raises(RuntimeError, match="GOOGLE_API_KEY"):
        build_chat_model(settings)


def test_load_persona_fields(settings):
    persona = load_persona(settings.persona_path)
    assert "BillyBear" in persona.description
    assert persona.personality


def test_load_persona_missing_file(tmp_path):
    with pytest.raises(PersonaLoadError):
        load_persona(tmp_path / "nope.json")


def test_load_persona_bad_json(tmp_path):
    path = tmp_path / "persona.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(PersonaLoadError):
        load_persona(path)


def test_load_persona_not_an_object(tmp_path):
    path = tmp_path / "persona.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(PersonaLoadError):
        load_persona(path)
