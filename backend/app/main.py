# app/main.py
from contextlib import asynccontextmanager
from typing import Any, Callable
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from app.core.chat_llm import ChatRelay, build_chat_client
from app.core.envelope import register_exception_handlers
from app.core.middleware import (
    BodySizeLimitMiddleware,
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
    UnhandledErrorMiddleware,
)
from app.core.provider import Available, check_availability, load_openai_client_class
from app.core.settings import Settings, settings
from app.routers.chat import router as chat_router
from app.routers.health import router as health_router

log = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    s: Settings = app.state.settings
    log.info(f"[main] {s.service_name} running on port {s.port}")
    log.info(f"[main] health check: http://localhost:{s.port}/health")
    log.info(f"[main] chat endpoint: http://localhost:{s.port}/api/chat")
    if not isinstance(app.state.availability, Available):
        log.warning(
            f"[main] chat provider unavailable ({app.state.availability.reason}); "
            "the chatbot will respond with fallback messages. Set OPENAI_API_KEY to enable it."
        )
    yield


def create_app(
    app_settings: Settings = settings,
    loader: Callable[[], Any] = load_openai_client_class,
) -> FastAPI:
    config = app_settings.provider_config()
    availability = check_availability(config, loader)

    app = FastAPI(title=app_settings.service_name, lifespan=lifespan)
    app.state.settings = app_settings
    app.state.provider_config = config
    app.state.availability = availability
    app.state.chat_relay = None
    if isinstance(availability, Available):
        app.state.chat_relay = ChatRelay(config, build_chat_client(config, availability.client_class))

    register_exception_handlers(app)

    # Starlette runs the last added middleware first
    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=app_settings.max_body_bytes)
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        window_ms=app_settings.rate_limit_window_ms,
        max_requests=app_settings.rate_limit_max_requests,
        trust_proxy=app_settings.trust_proxy,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origin_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)

    # Routers
    app.include_router(health_router)
    app.include_router(chat_router)

    log.info(f"[main] provider: {config!r}")
    return app


app = create_app()

