"""
Vision Node

Handles room photo analysis using Gemini Vision.
FULLY TRACED with LangSmith - including Gemini API calls.
"""

import asyncio
import json
import logging

from google import genai
from google.genai import types
from langsmith import traceable
from pydantic import ValidationError

from lumina.config import Settings
from lumina.core.validation import detect_mime_type
from lumina.models.room import (
    AnalysisResult,
    AnalysisSuccess,
    ApiFailure,
    ParseFailure,
    RoomAnalysisPayload,
    RoomContext,
)
from lumina.tools.genai_client import is_quota_error
from lumina.vision.context_rules import filter_analysis


logger = logging.getLogger(__name__)


ROOM_TYPES = {
    RoomContext.RESIDENTIAL: "Living Room, Bedroom, Kitchen, Dining Room, Bathroom, Home Office",
    RoomContext.COMMERCIAL: (
        "Open Plan Office, Executive Suite, Conference Room, Co-working Space, "
        "Retail Store, Lobby"
    ),
}


def build_analysis_prompt(room_context: RoomContext) -> str:
    context = room_context.value
    return f"""You are Lumina, a world-class Interior Designer.
Analyze this interior image. IMPORTANT: The user has explicitly identified this as a {context} space. Ensure all classification, design issues, and suggestions strictly align with a {context} environment.

1. CLASSIFY the room accurately within the context of {context} (e.g. {ROOM_TYPES[room_context]}).
2. Describe architectural features and MATERIALS explicitly (e.g., "Herringbone oak flooring", "Exposed concrete ceiling", "Floor-to-ceiling glass windows", "White drywall").
3. Identify design issues specific to the function.
4. PROACTIVELY suggest additions appropriate to the context.
5. Write each suggested prompt as "CHANGE [elements] to [new style]. KEEP EXISTING [original elements to preserve]."

Return JSON matching this schema:
{{
  "roomType": "string",
  "architecturalFeatures": ["string"],
  "designIssues": ["string"],
  "decorSuggestions": ["string"],
  "suggestedPrompts": [
    {{ "title": "string", "description": "string", "prompt": "string" }}
  ]
}}
"""


@traceable(name="parse_analysis_response", run_type="parser", tags=["parsing"])
def parse_analysis_response(response_text: str) -> AnalysisResult:
    """
    Validate the model's JSON and build a RoomAnalysis.

    Non-JSON and non-object payloads become ParseFailure. List fields of the
    wrong shape degrade to empty lists rather than failing the analysis.
    """
    if not response_text or not response_text.strip():
        return ParseFailure(message="No analysis returned", raw=response_text or "")
    try:
        data = json.loads(response_text)
    except json.JSONDecodeError as e:
        logger.warning("Analysis response was not JSON: %s", e)
        return ParseFailure(message=f"Failed to parse analysis JSON: {e}", raw=response_text)
    if not isinstance(data, dict):
        return ParseFailure(message="Analysis response was not a JSON object", raw=response_text)

    try:
        payload = RoomAnalysisPayload.model_validate(data)
    except ValidationError as e:
        return ParseFailure(message=f"Analysis response had an invalid shape: {e}", raw=response_text)
    return AnalysisSuccess(analysis=payload.to_analysis())


class LuminaVision:
    """
    Analysis collaborator: room photo + declared context -> AnalysisResult.
    Never raises for backend failures; they come back as ApiFailure.
    """

    def __init__(self, client: genai.Client, settings: Settings):
        self.client = client
        self.model = settings.analysis_model_name
        self.retry_after = settings.quota_retry_after_seconds

    @traceable(name="lumina_vision.analyze", run_type="chain", tags=["vision", "gemini"])
    async def analyze(self, image: bytes, room_context: RoomContext) -> AnalysisResult:
        try:
            response_text = await self._call_gemini_vision(image, room_context)
        except Exception as e:
            if is_quota_error(e):
                logger.warning("Room analysis hit quota exhaustion: %s", e)
                return ApiFailure(
                    message="The design service is at capacity. Please try again shortly.",
                    retry_after=self.retry_after,
                )
            logger.exception("Room analysis call failed")
            return ApiFailure(message=f"Failed to analyze image: {e}")

        result = parse_analysis_response(response_text)
        if isinstance(result, AnalysisSuccess):
            return AnalysisSuccess(analysis=filter_analysis(result.analysis, room_context))
        return result

    @traceable(
        name="gemini_vision_call",
        run_type="llm",
        tags=["gemini", "vision", "api-call"],
        metadata={"model_type": "gemini-vision"}
    )
    async def _call_gemini_vision(self, image: bytes, room_context: RoomContext) -> str:
        """
        Make the actual Gemini Vision API call.
        """
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            temperature=0.2
        )

        response = await asyncio.to_thread(
            self.client.models.generate_content,
            model=self.model,
            contents=[
                types.Part.from_bytes(data=image, mime_type=detect_mime_type(image)),
                build_analysis_prompt(room_context),
            ],
            config=config
        )

        return response.text or ""
