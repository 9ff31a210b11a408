from typing import Any, Optional
import logging

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, StrictStr, ValidationError

from app.core.chat_llm import ChatRelay
from app.core.envelope import InvalidRequest, translate_outcome
from app.core.fallback import fallback_reply
from app.core.provider import Availability, Unavailable
from app.dependencies import get_availability, get_chat_relay, get_client_ip

log = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api/chat", tags=["chat"])


class ChatRequest(BaseModel):
    message: StrictStr


def parse_chat_request(raw: Any) -> ChatRequest:
    """
    Validates the decoded request body.
    `message` must be a non-blank string; it is passed on unmodified.
    """
    if not isinstance(raw, dict):
        raise InvalidRequest("body must be a JSON object")
    try:
        req = ChatRequest.model_validate(raw)
    except ValidationError as e:
        raise InvalidRequest("message missing or not a string") from e
    if not req.message.strip():
        raise InvalidRequest("message is blank")
    return req


def _send(status_code: int, body: dict) -> JSONResponse:
    log.info(f"[chat] response sent: status={status_code} kind={next(iter(body))}")
    return JSONResponse(status_code=status_code, content=body)


@router.post("")
def chat(
    # JSON only: form-encoded posts arrive as raw bytes and fail the gate with 400
    body: Any = Body(default=None),
    client: str = Depends(get_client_ip),
    availability: Availability = Depends(get_availability),
    relay: Optional[ChatRelay] = Depends(get_chat_relay),
):
    # Plain def: FastAPI runs the blocking upstream call in its threadpool
    log.info(f"[chat] request received from {client}")
    try:
        req = parse_chat_request(body)
    except InvalidRequest as e:
        log.info(f"[chat] invalid request from {client}: {e}")
        raise

    log.info(f'[chat] user message: "{req.message}"')

    if isinstance(availability, Unavailable):
        return _send(200, {"response": fallback_reply(availability.reason)})

    if relay is None:
        raise RuntimeError("provider reported available but no chat relay was built")

    outcome = relay.relay(req.message)
    status_code, payload = translate_outcome(outcome)
    return _send(status_code, payload)
