"""
Generate Image Tool

Text-to-image interior concepts with Imagen. No input photo and no
Director involvement.
"""

import asyncio
import logging

from google import genai
from google.genai import types
from langsmith import traceable

from lumina.config import Settings
from lumina.core.exceptions import CollaboratorError
from lumina.tools.genai_client import translate_genai_error


logger = logging.getLogger(__name__)


class ImageGenerator:

    def __init__(self, client: genai.Client, settings: Settings):
        self.client = client
        self.model = settings.generation_model_name
        self.aspect_ratio = settings.generation_aspect_ratio
        self.retry_after = settings.quota_retry_after_seconds

    @traceable(
        name="imagen_generate_call",
        run_type="llm",
        tags=["imagen", "image", "generate", "api-call"],
        metadata={"model_type": "imagen"}
    )
    async def generate(self, prompt: str) -> bytes:
        """Generate one JPEG concept image for the prompt."""
        try:
            response = await asyncio.to_thread(
                self.client.models.generate_images,
                model=self.model,
                prompt=prompt,
                config=types.GenerateImagesConfig(
                    number_of_images=1,
                    output_mime_type="image/jpeg",
                    aspect_ratio=self.aspect_ratio,
                )
            )
        except Exception as e:
            raise translate_genai_error(e, "Image generation", self.retry_after) from e

        for generated in response.generated_images or []:
            if generated.image and generated.image.image_bytes:
                return generated.image.image_bytes

        logger.error("Imagen returned no image for prompt of %d chars", len(prompt))
        raise CollaboratorError("No image produced")
