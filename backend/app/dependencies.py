# backend/app/dependencies.py
from fastapi import Request
from typing import Optional

from app.core.chat_llm import ChatRelay
from app.core.middleware import client_ip
from app.core.provider import Availability


def get_availability(request: Request) -> Availability:
    # Resolved once in create_app(); override in tests via app.dependency_overrides
    return request.app.state.availability


def get_chat_relay(request: Request) -> Optional[ChatRelay]:
    # None while the provider is unavailable
    return getattr(request.app.state, "chat_relay", None)


def get_client_ip(request: Request) -> str:
    return client_ip(request, request.app.state.settings.trust_proxy)
