"""
Tests for the Gemini-backed tools: image editing, concept generation and
designer chat. The genai client is always mocked.

Run with: pytest tests/test_tools.py -v
"""

import json
from unittest.mock import MagicMock

import pytest
from google.genai import errors

from lumina.agents.chat_node import (
    FALLBACK_REPLY,
    DesignerChat,
    build_system_instruction,
    parse_chat_response,
)
from lumina.core.exceptions import (
    CollaboratorError,
    QuotaExceededError,
    UnderSpecifiedInstructionError,
)
from lumina.models.chat import HistoryEntry
from lumina.models.instruction import EditInstruction
from lumina.models.room import RoomContext
from lumina.tools.edit_image import HARD_CONSTRAINTS, EditImageTool, build_edit_payload
from lumina.tools.generate_image import ImageGenerator
from lumina.tools.genai_client import build_genai_client, translate_genai_error


QUOTA_ERROR = errors.ClientError(
    429, {"error": {"code": 429, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}}
)


def image_response(*parts):
    return MagicMock(candidates=[MagicMock(content=MagicMock(parts=list(parts)))])


def image_part(data: bytes):
    part = MagicMock()
    part.inline_data.data = data
    return part


def text_part():
    return MagicMock(inline_data=None)


def rug_instruction() -> EditInstruction:
    return EditInstruction(
        target_elements=frozenset({"rug"}),
        preserve_elements=frozenset({"walls", "Herringbone oak flooring"}),
        text="CHANGE the rug to jute.\nKEEP EXISTING (identical to the input image): Herringbone oak flooring, walls.",
        room_elements=frozenset({"rug", "walls", "Herringbone oak flooring"}),
    )


# ============ Edit payload ============

def test_payload_appends_all_hard_constraints():
    payload = build_edit_payload(rug_instruction())

    assert payload.startswith("CHANGE the rug to jute.")
    assert payload.endswith(HARD_CONSTRAINTS)
    for constraint in ("PRESERVATION PRIORITY", "GEOMETRY", "ISOLATION", "STYLE: Photorealistic"):
        assert constraint in payload
    print("✓ Hard constraints appended verbatim")


def test_payload_rejects_conversational_instruction():
    with pytest.raises(UnderSpecifiedInstructionError):
        build_edit_payload(EditInstruction.conversational())


def test_payload_rejects_partial_edit_without_preserve_list():
    instruction = EditInstruction(
        target_elements=frozenset({"rug"}),
        text="CHANGE the rug to jute.",
        room_elements=frozenset({"rug", "walls", "floor"}),
    )
    with pytest.raises(UnderSpecifiedInstructionError):
        build_edit_payload(instruction)


def test_payload_rejects_restoration_without_literal_material():
    instruction = EditInstruction(
        target_elements=frozenset({"floor"}),
        preserve_elements=frozenset({"walls"}),
        restoration_references={"floor": "Herringbone oak flooring"},
        text="RESTORE the floor to oak.\nKEEP EXISTING walls.",
        room_elements=frozenset({"floor", "walls"}),
    )
    with pytest.raises(UnderSpecifiedInstructionError):
        build_edit_payload(instruction)


def test_payload_rejects_change_line_naming_preserved_element():
    instruction = EditInstruction(
        target_elements=frozenset({"rug"}),
        preserve_elements=frozenset({"walls", "Herringbone oak flooring"}),
        text=(
            "CHANGE the rug to jute and paint the walls sage green.\n"
            "KEEP EXISTING (identical to the input image): Herringbone oak flooring, walls."
        ),
        room_elements=frozenset({"rug", "walls", "Herringbone oak flooring"}),
    )
    with pytest.raises(UnderSpecifiedInstructionError, match="preserved elements"):
        build_edit_payload(instruction)

    # Preserved features count too: the oak flooring keeps the floor off limits
    instruction = instruction.model_copy(update={
        "text": (
            "CHANGE the rug to jute over a new floor.\n"
            "KEEP EXISTING (identical to the input image): Herringbone oak flooring, walls."
        ),
    })
    with pytest.raises(UnderSpecifiedInstructionError, match="preserved elements"):
        build_edit_payload(instruction)


def test_payload_allows_pieces_of_targeted_group():
    instruction = EditInstruction(
        target_elements=frozenset({"furniture"}),
        preserve_elements=frozenset({"walls"}),
        text="CHANGE the furniture: swap in a linen sofa.\nKEEP EXISTING (identical to the input image): walls.",
        room_elements=frozenset({"furniture", "walls"}),
    )
    assert build_edit_payload(instruction).startswith("CHANGE the furniture")


def test_payload_rejects_overlap():
    instruction = EditInstruction(
        target_elements=frozenset({"rug"}),
        preserve_elements=frozenset({"rug", "walls"}),
        text="CHANGE the rug. KEEP EXISTING rug, walls.",
        room_elements=frozenset({"rug", "walls"}),
    )
    with pytest.raises(UnderSpecifiedInstructionError):
        build_edit_payload(instruction)


# ============ Edit tool ============

@pytest.mark.asyncio
async def test_edit_returns_first_image_part(settings, png_image):
    client = MagicMock()
    client.models.generate_content.return_value = image_response(text_part(), image_part(b"edited"))

    result = await EditImageTool(client, settings).edit(png_image, rug_instruction())

    assert result == b"edited"
    kwargs = client.models.generate_content.call_args.kwargs
    assert kwargs["model"] == settings.edit_image_model_name
    assert kwargs["contents"][1].endswith(HARD_CONSTRAINTS)


@pytest.mark.asyncio
async def test_edit_without_image_part_fails(settings, png_image):
    client = MagicMock()
    client.models.generate_content.return_value = image_response(text_part())

    with pytest.raises(CollaboratorError, match="No image produced"):
        await EditImageTool(client, settings).edit(png_image, rug_instruction())


@pytest.mark.asyncio
async def test_edit_never_calls_model_for_unsafe_instruction(settings, png_image):
    client = MagicMock()

    with pytest.raises(UnderSpecifiedInstructionError):
        await EditImageTool(client, settings).edit(png_image, EditInstruction.conversational())

    client.models.generate_content.assert_not_called()


@pytest.mark.asyncio
async def test_edit_quota_error(settings, png_image):
    client = MagicMock()
    client.models.generate_content.side_effect = QUOTA_ERROR

    with pytest.raises(QuotaExceededError) as exc_info:
        await EditImageTool(client, settings).edit(png_image, rug_instruction())

    assert exc_info.value.retry_after == settings.quota_retry_after_seconds


# ============ Concept generation ============

@pytest.mark.asyncio
async def test_generate_returns_image_bytes(settings):
    client = MagicMock()
    client.models.generate_images.return_value = MagicMock(
        generated_images=[MagicMock(image=MagicMock(image_bytes=b"concept"))]
    )

    result = await ImageGenerator(client, settings).generate("A sunlit Japandi reading nook")

    assert result == b"concept"
    kwargs = client.models.generate_images.call_args.kwargs
    assert kwargs["model"] == "imagen-4.0-generate-001"
    assert kwargs["config"].aspect_ratio == "16:9"


@pytest.mark.asyncio
async def test_generate_empty_response_fails(settings):
    client = MagicMock()
    client.models.generate_images.return_value = MagicMock(generated_images=[])

    with pytest.raises(CollaboratorError, match="No image produced"):
        await ImageGenerator(client, settings).generate("A sunlit Japandi reading nook")


# ============ Designer chat ============

def test_parse_chat_response_with_instruction():
    reply = parse_chat_response(json.dumps({
        "text": "Jute rug coming up.",
        "newGenerationPrompt": "CHANGE the rug to jute. KEEP EXISTING walls.",
    }))
    assert reply.reply_text == "Jute rug coming up."
    assert reply.edit_instruction == "CHANGE the rug to jute. KEEP EXISTING walls."


def test_parse_chat_response_null_instruction():
    assert parse_chat_response(json.dumps({"text": "Hi!", "newGenerationPrompt": None})).edit_instruction is None
    assert parse_chat_response(json.dumps({"text": "Hi!", "newGenerationPrompt": "null"})).edit_instruction is None


def test_parse_chat_response_missing_text_uses_fallback():
    assert parse_chat_response("{}").reply_text == FALLBACK_REPLY


def test_parse_chat_response_malformed():
    with pytest.raises(CollaboratorError):
        parse_chat_response("not json")
    with pytest.raises(CollaboratorError):
        parse_chat_response('"just a string"')


def test_system_instruction_carries_original_reality(sample_analysis):
    instruction = build_system_instruction(sample_analysis, RoomContext.COMMERCIAL)

    assert "Herringbone oak flooring, White drywall" in instruction
    assert "Current Context: Commercial" in instruction
    assert "KEEP EXISTING" in instruction


def test_system_instruction_without_analysis():
    assert "Original features unknown." in build_system_instruction(None, RoomContext.RESIDENTIAL)


@pytest.mark.asyncio
async def test_converse_is_deterministic_and_sends_history(settings, png_image, sample_analysis):
    client = MagicMock()
    client.models.generate_content.return_value = MagicMock(
        text=json.dumps({"text": "Sure.", "newGenerationPrompt": None})
    )
    history = [HistoryEntry(role="user", text="hello"), HistoryEntry(role="assistant", text="Hi!")]

    reply = await DesignerChat(client, settings).converse(
        history, png_image, sample_analysis, "what goes with oak?", RoomContext.RESIDENTIAL
    )

    assert reply.reply_text == "Sure."
    kwargs = client.models.generate_content.call_args.kwargs
    assert kwargs["config"].temperature == 0
    assert "user: hello | assistant: Hi!" in kwargs["contents"][1]
    assert 'User Request: "what goes with oak?"' in kwargs["contents"][1]


@pytest.mark.asyncio
async def test_converse_api_error_becomes_collaborator_error(settings, png_image):
    client = MagicMock()
    client.models.generate_content.side_effect = RuntimeError("connection reset")

    with pytest.raises(CollaboratorError):
        await DesignerChat(client, settings).converse([], png_image, None, "hi", RoomContext.RESIDENTIAL)


# ============ Client ============

def test_client_requires_api_key(settings):
    with pytest.raises(ValueError):
        build_genai_client(settings.model_copy(update={"google_api_key": ""}))


def test_translate_quota_error():
    translated = translate_genai_error(QUOTA_ERROR, "Image editing", retry_after=12)
    assert isinstance(translated, QuotaExceededError)
    assert translated.retry_after == 12


def test_translate_passes_lumina_errors_through():
    original = CollaboratorError("No image produced")
    assert translate_genai_error(original, "Image editing") is original
