"""
Shared fixtures: a sample room, tiny real images and fake collaborators
that stand in for the Gemini-backed ones.
"""

import asyncio
import io
from typing import List, Optional

import pytest
from PIL import Image

from lumina.agents.chat_node import ChatReply
from lumina.agents.director import Director
from lumina.config import Settings
from lumina.core.context_store import ContextStore
from lumina.models.room import AnalysisSuccess, RoomAnalysis, SuggestedPrompt


def make_image(fmt: str = "PNG", size=(8, 8), color=(200, 180, 160)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


# ============ Fakes ============

class FakeChat:
    """Designer chat that replays a scripted reply (or raises)."""

    def __init__(self, reply: Optional[ChatReply] = None, error: Optional[Exception] = None):
        self.reply = reply or ChatReply(reply_text="Happy to help!")
        self.error = error
        self.calls: List[dict] = []

    async def converse(self, history, current_image, original_analysis, user_message, room_context):
        self.calls.append({
            "history": list(history),
            "current_image": current_image,
            "analysis": original_analysis,
            "user_message": user_message,
            "room_context": room_context,
        })
        if self.error is not None:
            raise self.error
        return self.reply


class FakeAnalyzer:
    def __init__(self, result=None, gate: Optional[asyncio.Event] = None):
        self.result = result
        self.gate = gate
        self.calls = 0

    async def analyze(self, image, room_context):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        return self.result


class FakeEditor:
    def __init__(self, image: bytes = b"edited-image", error: Optional[Exception] = None,
                 gate: Optional[asyncio.Event] = None):
        self.image = image
        self.error = error
        self.gate = gate
        self.calls: List[tuple] = []

    async def edit(self, image, instruction):
        self.calls.append((image, instruction))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.image


class FakeGenerator:
    def __init__(self, image: bytes = b"concept-image", error: Optional[Exception] = None):
        self.image = image
        self.error = error
        self.prompts: List[str] = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.image


# ============ Fixtures ============

@pytest.fixture
def settings() -> Settings:
    return Settings(google_api_key="test-key", langchain_api_key="", langchain_tracing_v2=False)


@pytest.fixture
def png_image() -> bytes:
    return make_image("PNG")


@pytest.fixture
def jpeg_image() -> bytes:
    return make_image("JPEG")


@pytest.fixture
def sample_analysis() -> RoomAnalysis:
    return RoomAnalysis(
        room_type="Living Room",
        architectural_features=("Herringbone oak flooring", "White drywall"),
        design_issues=("Lighting is flat and overhead only",),
        decor_suggestions=("Add a layered wool rug", "Introduce warm floor lamps"),
        suggested_prompts=(
            SuggestedPrompt(
                title="Warm Minimal",
                description="Soft neutrals and warm wood",
                prompt="CHANGE the furniture to warm minimal pieces. KEEP EXISTING Herringbone oak flooring.",
            ),
        ),
    )


@pytest.fixture
def store(sample_analysis) -> ContextStore:
    store = ContextStore()
    store.record_analysis(sample_analysis)
    return store


@pytest.fixture
def fake_chat() -> FakeChat:
    return FakeChat()


@pytest.fixture
def director(fake_chat) -> Director:
    return Director(fake_chat, history_max_chars=2000)


@pytest.fixture
def analyzer(sample_analysis) -> FakeAnalyzer:
    return FakeAnalyzer(AnalysisSuccess(analysis=sample_analysis))


@pytest.fixture
def editor() -> FakeEditor:
    return FakeEditor()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()
