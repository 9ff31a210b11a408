# app/core/provider.py
import importlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

log = logging.getLogger("uvicorn.error")

MODULE_MISSING = "module-missing"
NO_CREDENTIAL = "no-credential"


@dataclass(frozen=True)
class ProviderConfig:
    """Read-only upstream settings shared by every request."""

    api_key: Optional[str]
    model_id: str
    max_tokens: int
    temperature: float
    timeout_seconds: float = 30.0

    def __repr__(self) -> str:
        # never print the key itself
        key = "set" if self.api_key else "unset"
        return (
            f"ProviderConfig(api_key={key}, model_id={self.model_id!r}, "
            f"max_tokens={self.max_tokens}, temperature={self.temperature}, "
            f"timeout_seconds={self.timeout_seconds})"
        )


@dataclass(frozen=True)
class Available:
    client_class: Any


@dataclass(frozen=True)
class Unavailable:
    reason: str


Availability = Union[Available, Unavailable]


def load_openai_client_class() -> Any:
    """Returns the OpenAI client class; ImportError if the SDK is not installed."""
    module = importlib.import_module("openai")
    try:
        return getattr(module, "OpenAI")
    except AttributeError as e:
        raise ImportError("installed openai package has no OpenAI client class") from e


def check_availability(
    config: ProviderConfig,
    loader: Callable[[], Any] = load_openai_client_class,
) -> Availability:
    """
    Decides, without touching the network, whether the chat relay can run.
    The integration is checked before the credential.
    """
    try:
        client_class = loader()
    except ImportError as e:
        log.warning(f"[provider] OpenAI integration not loadable: {e}")
        return Unavailable(MODULE_MISSING)

    if not config.api_key or not config.api_key.strip():
        return Unavailable(NO_CREDENTIAL)

    return Available(client_class=client_class)


__all__ = [
    "ProviderConfig",
    "Available",
    "Unavailable",
    "Availability",
    "MODULE_MISSING",
    "NO_CREDENTIAL",
    "check_availability",
    "load_openai_client_class",
]
