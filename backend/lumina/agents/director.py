"""
Director Workflow

Turns one user utterance into either a conversational reply or a tightly
scoped edit instruction:

    converse → interpret → contextualize → isolate → compose → END
        ↓                       ↓             ↓         ↓
    apologize / conversational  clarify ←─────┴─────────┘

The designer persona only drafts. Isolation, restoration and context rules
are enforced here on every turn, whatever the draft says.
"""

import logging
from typing import Any, Dict, Literal

from langgraph.graph import END, StateGraph
from langsmith import traceable

from lumina.agents.chat_node import DesignerChat
from lumina.agents.director_nodes import (
    apologize_node,
    clarify_node,
    compose_node,
    contextualize_node,
    conversational_node,
    interpret_node,
    isolate_node,
)
from lumina.core.context_store import ContextStore
from lumina.core.exceptions import CollaboratorError, QuotaExceededError
from lumina.models.instruction import DirectorDecision, EditInstruction
from lumina.models.room import RoomContext
from lumina.models.state import DirectorState, create_initial_state
from lumina.vision.context_rules import CONTEXT_GUIDANCE
from lumina.vision.labels import COMPOSITION_ELEMENTS, STYLING_ELEMENTS


logger = logging.getLogger(__name__)


# ============ Router Functions ============

def route_after_converse(state: DirectorState) -> Literal["apologize", "conversational", "interpret"]:
    if state.get("error"):
        return "apologize"
    if not state.get("raw_instruction"):
        return "conversational"
    return "interpret"


def route_on_fallback(next_node: str):
    """Continue to next_node unless the previous step gave up on the edit."""
    def route(state: DirectorState) -> str:
        if state.get("fallback_reason"):
            return "clarify"
        return next_node
    return route


# ============ Graph Definition ============

def create_director_graph(chat: DesignerChat) -> StateGraph:
    """
    Create the LangGraph workflow for one Director turn.

    The converse node closes over the chat collaborator so the graph itself
    holds no client state.
    """

    @traceable(name="director.converse", run_type="chain", tags=["langgraph", "director"])
    async def converse_node(state: DirectorState) -> Dict[str, Any]:
        try:
            reply = await chat.converse(
                state["history"],
                state["current_image"],
                state["analysis"],
                state["utterance"],
                state["room_context"],
            )
        except QuotaExceededError:
            raise
        except CollaboratorError as e:
            logger.warning("Designer chat failed: %s", e.message)
            return {"error": e.message}

        return {"reply_text": reply.reply_text, "raw_instruction": reply.edit_instruction}

    graph = StateGraph(DirectorState)

    graph.add_node("converse", converse_node)
    graph.add_node("interpret", interpret_node)
    graph.add_node("contextualize", contextualize_node)
    graph.add_node("isolate", isolate_node)
    graph.add_node("compose", compose_node)
    graph.add_node("apologize", apologize_node)
    graph.add_node("conversational", conversational_node)
    graph.add_node("clarify", clarify_node)

    graph.set_entry_point("converse")

    graph.add_conditional_edges(
        "converse",
        route_after_converse,
        {
            "apologize": "apologize",
            "conversational": "conversational",
            "interpret": "interpret",
        }
    )
    graph.add_edge("interpret", "contextualize")
    graph.add_conditional_edges(
        "contextualize",
        route_on_fallback("isolate"),
        {"isolate": "isolate", "clarify": "clarify"}
    )
    graph.add_conditional_edges(
        "isolate",
        route_on_fallback("compose"),
        {"compose": "compose", "clarify": "clarify"}
    )
    graph.add_conditional_edges(
        "compose",
        route_on_fallback("end"),
        {"end": END, "clarify": "clarify"}
    )

    for terminal in ("apologize", "conversational", "clarify"):
        graph.add_edge(terminal, END)

    return graph


# ============ Director ============

class Director:
    """
    Decides, for each chat turn, whether and how the image should change.
    """

    def __init__(self, chat: DesignerChat, history_max_chars: int = 2000):
        self.history_max_chars = history_max_chars
        self.app = create_director_graph(chat).compile()

    @traceable(name="director.direct", run_type="chain", tags=["director"])
    async def direct(
        self,
        utterance: str,
        store: ContextStore,
        room_context: RoomContext,
        current_image: bytes,
    ) -> DirectorDecision:
        """
        Run one turn. Reads the store, never writes to it.

        Raises:
            QuotaExceededError: the chat backend is out of quota
        """
        initial_state = create_initial_state(
            utterance=utterance,
            room_context=room_context,
            analysis=store.analysis,
            history=list(store.history(self.history_max_chars)),
            current_image=current_image,
        )
        final_state = await self.app.ainvoke(initial_state)
        decision = final_state["decision"]

        if decision.is_conversational_only:
            logger.info("Director: conversational reply (%s)", final_state.get("fallback_reason") or "no edit")
        else:
            logger.info(
                "Director: edit targets=%s preserve=%d restore=%s",
                sorted(decision.instruction.target_elements),
                len(decision.instruction.preserve_elements),
                sorted(decision.instruction.restoration_references),
            )
        return decision


def preset_instruction(prompt: str, room_context: RoomContext) -> EditInstruction:
    """
    Room-wide instruction for a style preset, suggested prompt or custom
    prompt. These skip classification and restyle the whole room.
    """
    elements = frozenset(COMPOSITION_ELEMENTS) | frozenset(STYLING_ELEMENTS)
    text = f"{prompt.strip()}\n{CONTEXT_GUIDANCE[room_context]}"
    return EditInstruction(
        target_elements=elements,
        text=text,
        room_elements=elements,
    ).ensure_dispatchable()
