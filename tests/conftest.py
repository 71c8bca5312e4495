from typing import List, Optional

import pytest

from config.settings import DEFAULT_ALLOWED_ORIGINS, PROJECT_ROOT, Settings


class FakeSession:
    """Records every turn and answers from a script of replies/exceptions."""

    def __init__(self, script: Optional[List[object]] = None, default: str = "Assistant: Hello, friend!"):
        self.script = list(script or [])
        self.default = default
        self.sent: List[str] = []

    async def send_message(self, text: str) -> str:
        self.sent.append(text)
        if self.script:
            item = self.script.pop(0)
            if isinstance(item, BaseException):
                raise item
            return item
        return self.default


class FakeUpstream:
    """Session factory that hands out FakeSessions and remembers them."""

    def __init__(self, **session_kwargs):
        self.session_kwargs = session_kwargs
        self.sessions: List[FakeSession] = []

    def __call__(self, settings):
        session = FakeSession(**self.session_kwargs)
        self.sessions.append(session)
        return session


class UpstreamError(Exception):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


@pytest.fixture
def settings():
    s = Settings()
    s.google_api_key = "test-key"
    s.gemini_model = "gemini-test"
    s.max_history_length = 10
    s.retry_max_attempts = 3
    s.retry_base_delay = 0
    s.allowed_origins = list(DEFAULT_ALLOWED_ORIGINS)
    s.rate_limit_max = 60
    s.rate_limit_window_seconds = 60
    s.persona_path = PROJECT_ROOT / "prompts" / "billybear.json"
    s.persona_name = "BillyBear"
    return s
