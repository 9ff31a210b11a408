import logging

from app.core.prompts import MAINTENANCE_MESSAGE, UNAVAILABLE_MESSAGE
from app.core.provider import MODULE_MISSING, NO_CREDENTIAL

log = logging.getLogger("uvicorn.error")

_FALLBACKS = {
    MODULE_MISSING: UNAVAILABLE_MESSAGE,
    NO_CREDENTIAL: MAINTENANCE_MESSAGE,
}


def fallback_reply(reason: str) -> str:
    """Fixed reply used instead of the upstream call when the provider can't be used."""
    if reason == MODULE_MISSING:
        log.warning("[fallback] OpenAI package not installed; answering with the unavailable message")
    elif reason == NO_CREDENTIAL:
        log.warning("[fallback] OpenAI API key not configured; answering with the maintenance message")
    else:
        raise ValueError(f"unknown fallback reason: {reason!r}")
    return _FALLBACKS[reason]
