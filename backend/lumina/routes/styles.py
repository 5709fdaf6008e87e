"""
Styles Route

GET /styles - The fixed design style presets offered after analysis.
"""

from typing import List

from fastapi import APIRouter

from lumina.models.schemas import StyleResponse
from lumina.models.styles import DESIGN_STYLES


router = APIRouter(prefix="/styles", tags=["Styles"])


@router.get("", response_model=List[StyleResponse])
async def list_styles() -> List[StyleResponse]:
    return [
        StyleResponse(id=style.id, name=style.name, description=style.description)
        for style in DESIGN_STYLES
    ]
