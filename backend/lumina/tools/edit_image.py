"""
Edit Image Tool

Applies a scoped edit instruction to a room photo using the Gemini image
model. Every prompt carries the same four hard constraints so the model
changes only what was asked.

FULLY TRACED with LangSmith - all Gemini image editing calls are tracked.
"""

import asyncio
import logging
from typing import Union

from google import genai
from google.genai import types
from langsmith import traceable

from lumina.config import Settings
from lumina.core.exceptions import CollaboratorError, UnderSpecifiedInstructionError
from lumina.core.validation import detect_mime_type
from lumina.models.instruction import EditInstruction
from lumina.tools.genai_client import translate_genai_error


logger = logging.getLogger(__name__)


HARD_CONSTRAINTS = """STRICT GENERATION CONSTRAINTS:
1. PRESERVATION PRIORITY: If the prompt asks to "Retain", "Keep", "Existing", or "Preserve" an element, that specific area MUST remain visually identical to the input image (same material, texture, color).
2. GEOMETRY: Do not change the room layout, window positions, or perspective.
3. ISOLATION: Only modify the specific elements mentioned in the 'CHANGE' section of the prompt. Leave everything else untouched.
4. STYLE: Photorealistic, 8k, high-end interior design photography."""


def build_edit_payload(instruction: Union[EditInstruction, str]) -> str:
    """
    Final prompt sent to the image model.

    EditInstructions are re-validated here; plain strings are accepted for
    the preset path, which has already been composed by the Director.

    Raises:
        UnderSpecifiedInstructionError: conversational, empty or unsafe instruction
    """
    if isinstance(instruction, EditInstruction):
        text = instruction.ensure_dispatchable().text
    else:
        text = (instruction or "").strip()
        if not text:
            raise UnderSpecifiedInstructionError("Edit instruction text is empty")
    return f"{text}\n\n{HARD_CONSTRAINTS}"


class EditImageTool:
    """
    Tool for applying edits to room photos using Gemini.
    All methods are traced with LangSmith for full observability.
    """

    def __init__(self, client: genai.Client, settings: Settings):
        self.client = client
        self.model = settings.edit_image_model_name
        self.retry_after = settings.quota_retry_after_seconds

    @traceable(
        name="edit_image_tool.edit",
        run_type="tool",
        tags=["tool", "image", "edit"],
        metadata={"description": "Apply a scoped edit instruction to a room photo"}
    )
    async def edit(self, image: bytes, instruction: Union[EditInstruction, str]) -> bytes:
        """
        Apply an edit instruction to an image.

        Args:
            image: Raw bytes of the image to edit (always the original upload)
            instruction: Validated EditInstruction, or composed instruction text

        Returns:
            Raw bytes of the edited image
        """
        prompt = build_edit_payload(instruction)
        return await self._call_gemini_edit(image, prompt)

    @traceable(
        name="gemini_edit_image_call",
        run_type="llm",
        tags=["gemini", "image", "edit", "api-call"],
        metadata={"model_type": "gemini-image"}
    )
    async def _call_gemini_edit(self, image: bytes, prompt: str) -> bytes:
        """
        Make the actual Gemini image edit API call.

        TRACED as an LLM call for proper visualization in LangSmith.
        """
        try:
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=image, mime_type=detect_mime_type(image)),
                    prompt
                ],
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE"],
                )
            )
        except Exception as e:
            raise translate_genai_error(e, "Image editing", self.retry_after) from e

        if response.candidates:
            for part in response.candidates[0].content.parts or []:
                if getattr(part, "inline_data", None) and part.inline_data.data:
                    return part.inline_data.data

        logger.error("Image model returned no image part")
        raise CollaboratorError("No image produced")
