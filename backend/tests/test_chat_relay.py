from types import SimpleNamespace

import httpx
import openai
import pytest

from app.core.chat_llm import (
    AuthError,
    ChatRelay,
    OtherError,
    QuotaExceeded,
    Success,
    build_chat_client,
    classify_upstream_error,
)
from app.core.envelope import translate_outcome
from app.core.prompts import SYSTEM_PROMPT
from app.core.provider import ProviderConfig

CONFIG = ProviderConfig(
    api_key="sk-test",
    model_id="gpt-3.5-turbo",
    max_tokens=500,
    temperature=0.7,
    timeout_seconds=30.0,
)

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _status_error(cls, status, code, message="nope"):
    return cls(message, response=httpx.Response(status, request=_REQUEST), body={"code": code})


class StubClient:
    def __init__(self, result):
        self.result = result
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def test_classify_quota_code():
    err = _status_error(openai.RateLimitError, 429, "insufficient_quota")
    assert classify_upstream_error(err) == QuotaExceeded()


def test_classify_plain_rate_limit_as_quota():
    err = _status_error(openai.RateLimitError, 429, "rate_limit_exceeded")
    assert classify_upstream_error(err) == QuotaExceeded()


def test_classify_auth_code():
    err = _status_error(openai.AuthenticationError, 401, "invalid_api_key")
    assert classify_upstream_error(err) == AuthError()


def test_classify_quota_code_on_other_status():
    # the code wins even if the provider picks a different status
    err = _status_error(openai.BadRequestError, 400, "insufficient_quota")
    assert classify_upstream_error(err) == QuotaExceeded()


def test_classify_ignores_message_text():
    err = _status_error(openai.BadRequestError, 400, None, message="insufficient_quota invalid_api_key")
    assert classify_upstream_error(err) == OtherError(detail="BadRequestError")


@pytest.mark.parametrize(
    "err",
    [
        openai.APITimeoutError(request=_REQUEST),
        openai.APIConnectionError(request=_REQUEST),
        RuntimeError("socket closed"),
        KeyError("choices"),
    ],
)
def test_classify_everything_else_as_other(err):
    outcome = classify_upstream_error(err)
    assert isinstance(outcome, OtherError)
    assert outcome.detail == type(err).__name__


def test_relay_success_with_usage():
    resp = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content="Hi there!"))],
        usage=SimpleNamespace(total_tokens=18),
    )
    client = StubClient(resp)

    outcome = ChatRelay(CONFIG, client).relay("Hello")

    assert outcome == Success(text="Hi there!", token_count=18)
    assert client.calls == [
        {
            "model": "gpt-3.5-turbo",
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": "Hello"},
            ],
            "max_tokens": 500,
            "temperature": 0.7,
        }
    ]


def test_relay_success_without_usage():
    resp = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="ok"))])
    outcome = ChatRelay(CONFIG, StubClient(resp)).relay("Hello")
    assert outcome == Success(text="ok", token_count=None)


def test_relay_uses_first_choice():
    resp = SimpleNamespace(
        choices=[
            SimpleNamespace(message=SimpleNamespace(content="first")),
            SimpleNamespace(message=SimpleNamespace(content="second")),
        ],
        usage=None,
    )
    assert ChatRelay(CONFIG, StubClient(resp)).relay("Hello").text == "first"


@pytest.mark.parametrize(
    "resp",
    [
        SimpleNamespace(choices=[]),
        SimpleNamespace(choices=None),
        SimpleNamespace(),
        SimpleNamespace(choices=[SimpleNamespace()]),
    ],
)
def test_relay_malformed_response_is_other_error(resp):
    outcome = ChatRelay(CONFIG, StubClient(resp)).relay("Hello")
    assert isinstance(outcome, OtherError)


def test_relay_never_raises_upstream_errors():
    err = _status_error(openai.AuthenticationError, 401, "invalid_api_key")
    client = StubClient(err)

    assert ChatRelay(CONFIG, client).relay("Hello") == AuthError()
    assert len(client.calls) == 1


def test_build_messages_keeps_user_text():
    relay = ChatRelay(CONFIG, StubClient(None))
    messages = relay.build_messages("{{ system }} \\n <script>")
    assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert messages[1] == {"role": "user", "content": "{{ system }} \\n <script>"}


def test_build_chat_client_passes_config():
    seen = {}

    def client_class(**kwargs):
        seen.update(kwargs)
        return "client"

    assert build_chat_client(CONFIG, client_class) == "client"
    assert seen == {"api_key": "sk-test", "timeout": 30.0, "max_retries": 0}


def test_build_chat_client_with_real_sdk_makes_no_request():
    client = build_chat_client(CONFIG, openai.OpenAI)
    assert client.max_retries == 0


def test_translate_outcomes():
    assert translate_outcome(Success(text="Hi", token_count=3)) == (200, {"response": "Hi"})
    assert translate_outcome(QuotaExceeded()) == (
        503,
        {"error": "Service temporarily unavailable. Please try again later."},
    )
    assert translate_outcome(AuthError()) == (
        500,
        {"error": "Service configuration error. Please contact support."},
    )
    assert translate_outcome(OtherError(detail="APITimeoutError: secret")) == (
        500,
        {"error": "An error occurred while processing your request. Please try again."},
    )


def test_translate_rejects_unknown_outcome():
    with pytest.raises(TypeError):
        translate_outcome("not an outcome")
