import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from app.core.prompts import SYSTEM_PROMPT
from app.core.provider import ProviderConfig

log = logging.getLogger("uvicorn.error")

# Machine-readable codes sent by the provider in the error body
QUOTA_CODES = frozenset({"insufficient_quota"})
AUTH_CODES = frozenset({"invalid_api_key"})


@dataclass(frozen=True)
class Success:
    text: str
    token_count: Optional[int] = None


@dataclass(frozen=True)
class QuotaExceeded:
    pass


@dataclass(frozen=True)
class AuthError:
    pass


@dataclass(frozen=True)
class OtherError:
    detail: str


UpstreamOutcome = Union[Success, QuotaExceeded, AuthError, OtherError]


def classify_upstream_error(exc: Exception) -> UpstreamOutcome:
    """
    Maps an upstream failure to an outcome using only its `code` and
    `status_code` attributes. The error message is never looked at.
    """
    code = getattr(exc, "code", None)
    status = getattr(exc, "status_code", None)

    if code in QUOTA_CODES or status == 429:
        return QuotaExceeded()
    if code in AUTH_CODES or status == 401:
        return AuthError()
    return OtherError(detail=type(exc).__name__)


def build_chat_client(config: ProviderConfig, client_class: Any) -> Any:
    # one attempt per request; a timeout surfaces as an exception
    return client_class(
        api_key=config.api_key,
        timeout=config.timeout_seconds,
        max_retries=0,
    )


def _total_tokens(resp: Any) -> Optional[int]:
    usage = getattr(resp, "usage", None)
    if usage is None:
        return None
    return getattr(usage, "total_tokens", None)


class ChatRelay:
    """Sends one message plus the Nova system prompt to the chat completions API."""

    def __init__(self, config: ProviderConfig, client: Any):
        self.config = config
        self._client = client

    def build_messages(self, message: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": message},
        ]

    def relay(self, message: str) -> UpstreamOutcome:
        log.info(f"[relay] calling {self.config.model_id}")
        try:
            resp = self._client.chat.completions.create(
                model=self.config.model_id,
                messages=self.build_messages(message),
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
            )
        except Exception as exc:
            outcome = classify_upstream_error(exc)
            log.error(
                f"[relay] upstream call failed: {type(exc).__name__} "
                f"(code={getattr(exc, 'code', None)}) -> {type(outcome).__name__}"
            )
            return outcome

        try:
            text = resp.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError) as exc:
            log.error(f"[relay] malformed upstream response: {type(exc).__name__}")
            return OtherError(detail="malformed upstream response")

        tokens = _total_tokens(resp)
        log.info(f"[relay] completion ok, tokens used: {tokens if tokens is not None else 'N/A'}")
        return Success(text=text, token_count=tokens)


__all__ = [
    "ChatRelay",
    "Success",
    "QuotaExceeded",
    "AuthError",
    "OtherError",
    "UpstreamOutcome",
    "build_chat_client",
    "classify_upstream_error",
]
