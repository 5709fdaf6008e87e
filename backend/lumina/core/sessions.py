"""
Session Registry

In-memory map of session id -> session handle. Each browser session owns
its own context store and state machines; only the collaborators (and the
single genai client behind them) are shared.
"""

import logging
import uuid
from typing import Callable, Dict, Optional

from lumina.agents.chat_node import DesignerChat
from lumina.agents.director import Director
from lumina.agents.orchestrator import (
    AnalysisCollaborator,
    ConceptSession,
    DesignSession,
    EditCollaborator,
    GenerationCollaborator,
)
from lumina.agents.vision_node import LuminaVision
from lumina.config import Settings
from lumina.core.exceptions import SessionNotFoundError
from lumina.tools.edit_image import EditImageTool
from lumina.tools.generate_image import ImageGenerator
from lumina.tools.genai_client import build_genai_client


logger = logging.getLogger(__name__)


class Collaborators:
    """The Gemini-backed services shared by every session."""

    def __init__(
        self,
        analyzer: AnalysisCollaborator,
        director: Director,
        editor: EditCollaborator,
        generator: GenerationCollaborator,
    ):
        self.analyzer = analyzer
        self.director = director
        self.editor = editor
        self.generator = generator


def build_collaborators(settings: Settings) -> Collaborators:
    """Wire every Gemini-backed collaborator to one explicitly built client."""
    client = build_genai_client(settings)
    return Collaborators(
        analyzer=LuminaVision(client, settings),
        director=Director(DesignerChat(client, settings), settings.history_max_chars),
        editor=EditImageTool(client, settings),
        generator=ImageGenerator(client, settings),
    )


class SessionHandle:
    def __init__(self, id: str, design: DesignSession, concept: ConceptSession):
        self.id = id
        self.design = design
        self.concept = concept

    def reset(self) -> None:
        self.design.reset()
        self.concept.reset()


class SessionRegistry:
    """
    Collaborators are built lazily on the first session so the app can
    start (and serve /health) without an API key.
    """

    def __init__(
        self,
        settings: Settings,
        collaborators_factory: Callable[[Settings], Collaborators] = build_collaborators,
    ):
        self.settings = settings
        self._factory = collaborators_factory
        self._collaborators: Optional[Collaborators] = None
        self._sessions: Dict[str, SessionHandle] = {}

    @property
    def collaborators(self) -> Collaborators:
        if self._collaborators is None:
            self._collaborators = self._factory(self.settings)
        return self._collaborators

    def create(self) -> SessionHandle:
        c = self.collaborators
        session_id = uuid.uuid4().hex
        handle = SessionHandle(
            id=session_id,
            design=DesignSession(c.analyzer, c.director, c.editor, self.settings),
            concept=ConceptSession(c.generator, self.settings),
        )
        self._sessions[session_id] = handle
        logger.info("Created session %s (%d active)", session_id, len(self._sessions))
        return handle

    def get(self, session_id: str) -> SessionHandle:
        handle = self._sessions.get(session_id)
        if handle is None:
            raise SessionNotFoundError(session_id)
        return handle

    def discard(self, session_id: str) -> None:
        handle = self.get(session_id)
        handle.reset()
        del self._sessions[session_id]
        logger.info("Discarded session %s", session_id)

    def __len__(self) -> int:
        return len(self._sessions)
