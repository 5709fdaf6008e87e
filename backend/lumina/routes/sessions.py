"""
Sessions Route

One session per browser tab: upload and analyze a room, pick a redesign,
refine it in chat with Lumina, or generate concepts from text.

FULLY TRACED with LangSmith.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from langsmith import traceable

from lumina.agents.orchestrator import StepOutcome
from lumina.core.exceptions import LuminaError
from lumina.core.sessions import SessionHandle, SessionRegistry
from lumina.core.validation import decode_image_payload, encode_image
from lumina.models.chat import DisplayOnlyNotice
from lumina.models.schemas import (
    ChatRequest,
    GenerateRequest,
    MessageResponse,
    RedesignRequest,
    SessionSnapshot,
    StepResponse,
    UploadRequest,
)


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/sessions", tags=["Sessions"])


# ============ Dependencies ============

def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionHandle:
    return registry.get(session_id)


# ============ Rendering ============

def _encode(image: Optional[bytes]) -> Optional[str]:
    return encode_image(image) if image else None


def _status_for(outcome: StepOutcome) -> int:
    if outcome.ok:
        return status.HTTP_200_OK
    if outcome.error_code == "quota_exceeded":
        return status.HTTP_429_TOO_MANY_REQUESTS
    if outcome.error_code == "cancelled":
        return status.HTTP_409_CONFLICT
    return status.HTTP_502_BAD_GATEWAY


def step_response(outcome: StepOutcome) -> JSONResponse:
    body = StepResponse(
        state=outcome.state.value,
        ok=outcome.ok,
        message=outcome.message,
        error_code=outcome.error_code,
        retryable=outcome.retryable,
        retry_after=outcome.retry_after,
        reply=outcome.reply,
        image_base64=_encode(outcome.image),
    )
    headers = {}
    if outcome.retry_after is not None:
        headers["Retry-After"] = str(int(outcome.retry_after))
    return JSONResponse(
        status_code=_status_for(outcome),
        content=body.model_dump(mode="json"),
        headers=headers,
    )


def snapshot(handle: SessionHandle) -> SessionSnapshot:
    design = handle.design
    messages = [
        MessageResponse(
            id=entry.id,
            role=entry.role,
            text=entry.text,
            display_only=isinstance(entry, DisplayOnlyNotice),
        )
        for entry in design.store.messages
    ]
    return SessionSnapshot(
        session_id=handle.id,
        state=design.state.value,
        busy=design.busy,
        room_context=design.room_context,
        analysis=design.analysis,
        original_image_base64=_encode(design.original_image),
        current_image_base64=_encode(design.current_image),
        messages=messages,
        redesign_count=len(design.project_log),
        concept_state=handle.concept.state.value,
        concept_image_base64=_encode(handle.concept.image),
    )


# ============ Endpoints ============

@router.post("", response_model=SessionSnapshot, status_code=status.HTTP_201_CREATED)
async def create_session(registry: SessionRegistry = Depends(get_registry)) -> SessionSnapshot:
    try:
        handle = registry.create()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        raise LuminaError(str(e), error_code="configuration_error")
    return snapshot(handle)


@router.get("/{session_id}", response_model=SessionSnapshot)
async def get_session_snapshot(handle: SessionHandle = Depends(get_session)) -> SessionSnapshot:
    return snapshot(handle)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    registry.discard(session_id)


@router.post("/{session_id}/upload", response_model=StepResponse)
@traceable(name="upload_endpoint", run_type="chain", tags=["api", "vision"])
async def upload_room(request: UploadRequest, handle: SessionHandle = Depends(get_session)):
    """
    Analyze an uploaded room photo.

    IDLE → ANALYZING → SELECTING, or back to IDLE if analysis fails.
    """
    image = decode_image_payload(request.image_base64)
    outcome = await handle.design.upload(image, request.room_context)
    return step_response(outcome)


@router.post("/{session_id}/redesign", response_model=StepResponse)
@traceable(name="redesign_endpoint", run_type="chain", tags=["api", "redesign"])
async def redesign_room(request: RedesignRequest, handle: SessionHandle = Depends(get_session)):
    """Apply a style preset, a suggested prompt or a custom prompt to the original photo."""
    outcome = await handle.design.redesign(
        style_id=request.style_id,
        suggestion_index=request.suggestion_index,
        custom_prompt=request.custom_prompt,
    )
    return step_response(outcome)


@router.post("/{session_id}/chat", response_model=StepResponse)
@traceable(name="chat_endpoint", run_type="chain", tags=["api", "chat", "director"])
async def chat(request: ChatRequest, handle: SessionHandle = Depends(get_session)):
    """
    Talk to Lumina about the current design.

    Conversational turns return a reply only. Edit turns also return the
    regenerated image; on failure the previous image stays in place.
    """
    outcome = await handle.design.send_message(request.message)
    return step_response(outcome)


@router.post("/{session_id}/reset", response_model=SessionSnapshot)
async def reset_session(handle: SessionHandle = Depends(get_session)) -> SessionSnapshot:
    handle.reset()
    return snapshot(handle)


@router.post("/{session_id}/reselect", response_model=SessionSnapshot)
async def reselect_style(handle: SessionHandle = Depends(get_session)) -> SessionSnapshot:
    """Try another style: COMPLETE → SELECTING, keeping the upload and its analysis."""
    handle.design.reselect()
    return snapshot(handle)


@router.post("/{session_id}/abort", response_model=SessionSnapshot)
async def abort_step(handle: SessionHandle = Depends(get_session)) -> SessionSnapshot:
    handle.design.abort()
    handle.concept.abort()
    return snapshot(handle)


@router.post("/{session_id}/generate", response_model=StepResponse)
@traceable(name="generate_endpoint", run_type="chain", tags=["api", "imagen"])
async def generate_concept(request: GenerateRequest, handle: SessionHandle = Depends(get_session)):
    """Generate an interior concept from text alone."""
    outcome = await handle.concept.generate(request.prompt)
    return step_response(outcome)
