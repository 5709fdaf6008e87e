"""
Room Models

The room analysis produced once per uploaded photo, the declared room
context, and the tagged result returned by the analysis collaborator.
"""

from enum import Enum
from typing import Any, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError, field_validator


class RoomContext(str, Enum):
    """Kind of space declared by the user at upload time."""
    RESIDENTIAL = "Residential"
    COMMERCIAL = "Commercial"


class SuggestedPrompt(BaseModel):
    """A ready-to-send restyling instruction proposed by the analysis."""
    title: str
    description: str
    prompt: str

    model_config = {"frozen": True}


class RoomAnalysis(BaseModel):
    """
    Structured critique of a room photo.

    architectural_features is the canonical record of the room's original
    materials; it is consulted for restoration requests for the lifetime
    of the session and is never mutated.
    """
    room_type: str = Field(..., description="Classification label, e.g. 'Living Room'")
    architectural_features: Tuple[str, ...] = Field(
        default=(), description="Explicit material/structural observations"
    )
    design_issues: Tuple[str, ...] = ()
    decor_suggestions: Tuple[str, ...] = ()
    suggested_prompts: Tuple[SuggestedPrompt, ...] = ()

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [{
                "room_type": "Living Room",
                "architectural_features": ["Herringbone oak flooring", "White drywall"],
                "design_issues": ["Lighting is flat and overhead only"],
                "decor_suggestions": ["Add a layered rug"],
                "suggested_prompts": [{
                    "title": "Warm Minimal",
                    "description": "Soft neutrals and warm wood",
                    "prompt": "CHANGE the furniture to warm minimal pieces. KEEP EXISTING Herringbone oak flooring.",
                }],
            }]
        },
    }


# ============ Backend payload validation ============

def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


class RoomAnalysisPayload(BaseModel):
    """
    Raw JSON shape returned by the vision model.

    Lenient on lists (anything that is not a list of strings degrades to an
    empty list) but never lets an unchecked value into RoomAnalysis.
    """
    roomType: Optional[str] = None
    architecturalFeatures: List[str] = []
    designIssues: List[str] = []
    decorSuggestions: List[str] = []
    suggestedPrompts: List[SuggestedPrompt] = []

    model_config = {"extra": "ignore"}

    @field_validator("roomType", mode="before")
    @classmethod
    def coerce_room_type(cls, v):
        return v if isinstance(v, str) else None

    @field_validator("architecturalFeatures", "designIssues", "decorSuggestions", mode="before")
    @classmethod
    def coerce_string_list(cls, v):
        return _string_list(v)

    @field_validator("suggestedPrompts", mode="before")
    @classmethod
    def drop_malformed_prompts(cls, v):
        if not isinstance(v, list):
            return []
        prompts = []
        for item in v:
            try:
                prompt = SuggestedPrompt.model_validate(item)
            except ValidationError:
                continue
            if prompt.prompt.strip():
                prompts.append(prompt)
        return prompts

    def to_analysis(self) -> RoomAnalysis:
        return RoomAnalysis(
            room_type=(self.roomType or "").strip() or "Unknown Room",
            architectural_features=tuple(self.architecturalFeatures),
            design_issues=tuple(self.designIssues),
            decor_suggestions=tuple(self.decorSuggestions),
            suggested_prompts=tuple(self.suggestedPrompts),
        )


# ============ Tagged analysis result ============

class AnalysisSuccess(BaseModel):
    analysis: RoomAnalysis

    model_config = {"frozen": True}


class ParseFailure(BaseModel):
    """The backend answered, but not with a usable analysis."""
    message: str
    raw: str = ""

    model_config = {"frozen": True}


class ApiFailure(BaseModel):
    """The backend call itself failed. retry_after is set for quota exhaustion."""
    message: str
    retry_after: Optional[float] = None

    model_config = {"frozen": True}

    @property
    def is_quota_exhausted(self) -> bool:
        return self.retry_after is not None


AnalysisResult = Union[AnalysisSuccess, ParseFailure, ApiFailure]
