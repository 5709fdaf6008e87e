"""
Designer Chat Node

The Lumina persona. Answers the user and drafts an edit instruction for
the image model when the user asks for a change. Its draft is never sent
as-is: the Director re-scopes it before anything is dispatched.

FULLY TRACED with LangSmith.
"""

import asyncio
import json
import logging
from typing import List, Optional

from google import genai
from google.genai import types
from langsmith import traceable
from pydantic import BaseModel

from lumina.config import Settings
from lumina.core.exceptions import CollaboratorError
from lumina.core.validation import detect_mime_type
from lumina.models.chat import HistoryEntry
from lumina.models.room import RoomAnalysis, RoomContext
from lumina.tools.genai_client import translate_genai_error
from lumina.vision.context_rules import CONTEXT_GUIDANCE


logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I'm having trouble understanding that."


class ChatReply(BaseModel):
    reply_text: str
    edit_instruction: Optional[str] = None

    model_config = {"frozen": True}


def describe_original_reality(analysis: Optional[RoomAnalysis], room_context: RoomContext) -> str:
    if analysis is None:
        return "Original features unknown."
    materials = ", ".join(analysis.architectural_features) or "none recorded"
    return (
        f"Original Room Type: {analysis.room_type}\n"
        f"Original Authentic Materials (The \"Before\" state): {materials}\n"
        f"Current Context: {room_context.value}"
    )


def build_system_instruction(analysis: Optional[RoomAnalysis], room_context: RoomContext) -> str:
    return f"""You are Lumina, an expert AI Interior Designer.

CONTEXT:
1. **Original Reality**: {describe_original_reality(analysis, room_context)}
2. **Task**: You are modifying this space based on user requests.

CRITICAL "DIRECTOR" LOGIC:
You are not just chatting; you are directing an image generation model. When the user asks for a change, you must write a 'newGenerationPrompt' that is EXTREMELY PRECISE.

Rule 1: ISOLATION (The "Only" Rule)
- If the user says "Change the rug", it IMPLIES "Keep the walls, floor, ceiling, and furniture EXACTLY as they are."
- Your prompt MUST explicitly list what to PRESERVE.
- Structure your prompt like this: "CHANGE [Target Element] to [New Style]. KEEP EXISTING [List of specific original elements to preserve]."

Rule 2: RESTORATION
- If the user says "Keep the floor" or "Restore the floor", look at 'Original Reality' and instruct the generator to "Render the floor exactly as [Material Name] matching the original image."

Rule 3: CONTEXT
- {CONTEXT_GUIDANCE[room_context]} Only go against this when the user explicitly asks.

Rule 4: CONVERSATION
- If the user is only asking a question or chatting, set newGenerationPrompt to null.

Response Format (JSON):
{{
  "text": "Conversational response to user (be helpful and confirm exactly what you are keeping/changing)",
  "newGenerationPrompt": "Full detailed prompt for the image generator, or null if just chatting. Make this prompt self-contained."
}}
"""


def parse_chat_response(response_text: str) -> ChatReply:
    """
    Raises:
        CollaboratorError: the response is not a JSON object
    """
    try:
        data = json.loads(response_text or "")
    except json.JSONDecodeError as e:
        raise CollaboratorError(f"Designer reply was not JSON: {e}")
    if not isinstance(data, dict):
        raise CollaboratorError("Designer reply was not a JSON object")

    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        text = FALLBACK_REPLY

    instruction = data.get("newGenerationPrompt")
    if not isinstance(instruction, str) or not instruction.strip():
        instruction = None
    elif instruction.strip().lower() in ("null", "none"):
        instruction = None

    return ChatReply(reply_text=text.strip(), edit_instruction=instruction)


class DesignerChat:
    """
    Chat collaborator backing the Director.
    Called at temperature 0 so the same turn yields the same draft.
    """

    def __init__(self, client: genai.Client, settings: Settings):
        self.client = client
        self.model = settings.chat_model_name
        self.retry_after = settings.quota_retry_after_seconds

    @traceable(
        name="designer_chat.converse",
        run_type="llm",
        tags=["gemini", "chat", "director", "api-call"],
        metadata={"model_type": "gemini-flash", "task": "designer_chat"}
    )
    async def converse(
        self,
        history: List[HistoryEntry],
        current_image: bytes,
        original_analysis: Optional[RoomAnalysis],
        user_message: str,
        room_context: RoomContext,
    ) -> ChatReply:
        """
        Ask the designer persona to respond to one user turn.

        Raises:
            QuotaExceededError: backend quota exhausted
            CollaboratorError: any other backend failure or malformed reply
        """
        history_context = " | ".join(entry.render() for entry in history)
        prompt = (
            f'User Request: "{user_message}"\n'
            f"Conversation History: {history_context}"
        )

        try:
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=current_image, mime_type=detect_mime_type(current_image)),
                    prompt,
                ],
                config=types.GenerateContentConfig(
                    system_instruction=build_system_instruction(original_analysis, room_context),
                    response_mime_type="application/json",
                    temperature=0,
                )
            )
        except Exception as e:
            raise translate_genai_error(e, "Designer chat", self.retry_after) from e

        return parse_chat_response(response.text)
