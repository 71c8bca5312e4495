from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from agent.agent import ChatAgent, SessionFactory
from agent.core.prompt import PersonaLoadError, load_persona
from agent.errors import classify_failure, fallback_reply
from app.middleware import PrefixCORSMiddleware, RateLimitMiddleware
from config.settings import Settings, get_settings


logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("billybear")

INVALID_MESSAGES = "Invalid messages format"


class ChatMessage(BaseModel):
    message: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(..., min_length=1)


class ChatReply(BaseModel):
    reply: str


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[SessionFactory] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            persona = load_persona(settings.persona_path)
        except PersonaLoadError:
            logger.exception("Failed to load bot prompt")
            raise
        logger.info(
            "Config: model=%s key_set=%s history=%s origins=%s",
            settings.gemini_model,
            bool(settings.google_api_key),
            settings.max_history_length,
            len(settings.allowed_origins),
        )
        if not settings.google_api_key:
            logger.warning("GOOGLE_API_KEY is not set; upstream calls will fail")
        app.state.chat_agent = ChatAgent(persona, settings, session_factory=session_factory)
        yield

    app = FastAPI(title="BillyBear Chat Server", version="1.0.0", lifespan=lifespan)

    # rate limiting sits inside CORS so 429s still carry CORS headers
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_max,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(
        PrefixCORSMiddleware,
        allowed_prefixes=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_request(request: Request, call_next):
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.info(
                "%s %s %s %dms",
                request.method,
                request.url.path,
                status_code,
                duration_ms,
            )

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": INVALID_MESSAGES})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error("Unhandled error: %s", exc, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.post("/chat", response_model=ChatReply)
    async def chat(req: ChatRequest, request: Request) -> Dict[str, Any]:
        agent: ChatAgent = request.app.state.chat_agent
        logger.info("Incoming chat: messages=%s", len(req.messages))
        try:
            reply = await agent.reply([m.message for m in req.messages])
        except Exception as exc:
            category = classify_failure(exc)
            logger.exception("Error in chat endpoint (%s): %s", category.value, exc)
            return {"reply": fallback_reply(category)}
        return {"reply": reply}

    @app.get("/")
    async def health() -> Dict[str, str]:
        return {
            "status": "ok",
            "message": "BillyBear Chat Server is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    logger.info("Server is running on http://localhost:%s", settings.port)
    uvicorn.run("app.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
