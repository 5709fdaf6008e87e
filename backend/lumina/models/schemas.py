"""
Lumina - API Schemas

Request and response bodies for the HTTP surface. Images travel as base64
strings; everything else mirrors the domain models.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from lumina.models.room import RoomAnalysis, RoomContext


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    detail: str
    error_code: Optional[str] = None


# ============ Requests ============

class UploadRequest(BaseModel):
    """Request body for /sessions/{id}/upload."""
    image_base64: str = Field(..., description="Base64 encoded room photo (data URL prefix allowed)")
    room_context: RoomContext = Field(default=RoomContext.RESIDENTIAL)

    model_config = {
        "json_schema_extra": {
            "examples": [{
                "image_base64": "data:image/jpeg;base64,/9j/4AAQSkZJRg...",
                "room_context": "Residential",
            }]
        }
    }


class RedesignRequest(BaseModel):
    """Exactly one of style_id, suggestion_index or custom_prompt."""
    style_id: Optional[str] = Field(None, description="One of the ids from GET /styles")
    suggestion_index: Optional[int] = Field(None, ge=0, description="Index into the analysis' suggested prompts")
    custom_prompt: Optional[str] = Field(None, description="Free-form restyling instruction")


class ChatRequest(BaseModel):
    message: str = Field(..., description="What the user said to Lumina")


class GenerateRequest(BaseModel):
    """Request body for text-to-image concepts."""
    prompt: str = Field(..., description="Description of the interior to generate")


# ============ Responses ============

class MessageResponse(BaseModel):
    id: str
    role: Literal["user", "assistant"]
    text: str
    display_only: bool = False


class StepResponse(BaseModel):
    """Outcome of one session step. Failures that leave the session usable come back here."""
    state: str
    ok: bool
    message: Optional[str] = None
    error_code: Optional[str] = None
    retryable: bool = False
    retry_after: Optional[float] = None
    reply: Optional[str] = None
    image_base64: Optional[str] = None


class SessionSnapshot(BaseModel):
    session_id: str
    state: str
    busy: bool = False
    room_context: Optional[RoomContext] = None
    analysis: Optional[RoomAnalysis] = None
    original_image_base64: Optional[str] = None
    current_image_base64: Optional[str] = None
    messages: List[MessageResponse] = Field(default_factory=list)
    redesign_count: int = 0
    concept_state: str
    concept_image_base64: Optional[str] = None


class StyleResponse(BaseModel):
    id: str
    name: str
    description: str
