"""
Director State

Defines the state passed between the Director's LangGraph nodes.
This is the "memory" of one Director invocation, from the user's utterance
to the final decision.
"""

from typing import TypedDict, List, Optional, Dict

from lumina.models.chat import HistoryEntry
from lumina.models.instruction import DirectorDecision
from lumina.models.room import RoomAnalysis, RoomContext


class DirectorState(TypedDict):
    """
    Shared state for the Director workflow.

    Built once per user utterance and discarded after the decision is emitted.
    """

    # === Input ===
    utterance: str                              # What the user just said
    room_context: RoomContext                   # Residential / Commercial
    analysis: Optional[RoomAnalysis]            # ORIGINAL analysis, never an edited state
    history: List[HistoryEntry]                 # Prior turns, notices excluded
    current_image: bytes                        # Image the user is looking at

    # === Collaborator reply ===
    reply_text: str
    raw_instruction: Optional[str]

    # === Interpretation ===
    change_clauses: List[str]                   # Utterance clauses asking for a change
    target_elements: List[str]
    keep_elements: List[str]
    restore_elements: List[str]
    restoration_references: Dict[str, str]
    preserve_elements: List[str]
    change_description: str

    # === Output ===
    decision: Optional[DirectorDecision]

    # === Control ===
    fallback_reason: Optional[str]              # Set when the edit cannot be made safe
    error: Optional[str]                        # Collaborator failure


def create_initial_state(
    utterance: str,
    room_context: RoomContext,
    analysis: Optional[RoomAnalysis],
    history: List[HistoryEntry],
    current_image: bytes,
) -> DirectorState:
    """
    Create initial Director state for one utterance.

    Args:
        utterance: The user's message
        room_context: Context declared at upload
        analysis: Original room analysis (or None if unavailable)
        history: Serialized prior conversation, oldest first
        current_image: Image currently displayed to the user

    Returns:
        Initial DirectorState ready for processing
    """
    return DirectorState(
        utterance=utterance,
        room_context=room_context,
        analysis=analysis,
        history=list(history),
        current_image=current_image,
        reply_text="",
        raw_instruction=None,
        change_clauses=[],
        target_elements=[],
        keep_elements=[],
        restore_elements=[],
        restoration_references={},
        preserve_elements=[],
        change_description="",
        decision=None,
        fallback_reason=None,
        error=None,
    )
