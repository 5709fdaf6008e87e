"""
Director Nodes

LangGraph nodes that turn the designer's draft plus the user's own words
into a tightly scoped edit instruction:

    interpret -> contextualize -> isolate -> compose

Every node is pure: the same state always yields the same update.
"""

import logging
import re
from typing import Any, Dict, Iterable, List

from langsmith import traceable

from lumina.core.exceptions import UnderSpecifiedInstructionError
from lumina.models.instruction import DirectorDecision, EditInstruction
from lumina.models.state import DirectorState
from lumina.vision.context_rules import (
    CONTEXT_GUIDANCE,
    suppress_elements,
    suppress_sentences,
)
from lumina.vision.labels import (
    COMPOSITION_ELEMENTS,
    FURNITURE_PIECES,
    STYLING_ELEMENTS,
    element_within,
    elements_in,
    features_for_element,
)


logger = logging.getLogger(__name__)


APOLOGY_TEXT = "I'm sorry, I couldn't process that request right now."
FALLBACK_REPLY = "I'm having trouble understanding that."
CLARIFY_TEXT = (
    "I want to make sure I only touch the right part of the room. "
    "Could you tell me exactly which element you'd like me to change?"
)

# Clause boundaries within one utterance
_CLAUSE_SPLIT = re.compile(r"[,.;!?]+|\s+(?:but|and|then|while)\s+", re.IGNORECASE)

_RESTORE_CUES = re.compile(
    r"\b(?:restore|restored|revert|reverted|original|originally|as it was|back to|undo|go back|put back)\b"
)
_KEEP_CUES = re.compile(
    r"\b(?:keep|preserve|leave|retain|untouched|don't touch|do not touch|"
    r"don't change|do not change|dont change|without changing)\b"
)
_CHANGE_CUES = re.compile(
    r"\b(?:change|make|replace|swap|add|paint|turn|switch|update|redo|remove|give|try|use|"
    r"want|put|restyle|refresh|modernize|brighten|darken|get rid of)\b"
)

_KEEP_SECTION = re.compile(r"\bKEEP(?: EXISTING)?\b")
_LEADING_CHANGE = re.compile(r"^\s*CHANGE\b[\s:]*", re.IGNORECASE)
_RESTORE_SENTENCE = re.compile(r"^\s*(?:RESTORE|Render)\b", re.IGNORECASE)
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_DRAFT_CLAUSE_SPLIT = re.compile(
    r"(?<=[.!?])\s+|[,;]\s*|\s+(?:and|but|while|then|plus)\s+", re.IGNORECASE
)


# ============ Helpers ============

def _ordered_unique(items: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def _join(items: List[str]) -> str:
    if len(items) <= 1:
        return "".join(items)
    return f"{', '.join(items[:-1])} and {items[-1]}"


def _sentence(text: str) -> str:
    text = text.strip()
    if text and text[-1] not in ".!?":
        text += "."
    return text


def classify_clause(clause: str, previous: str = "") -> str:
    """
    Kind of one clause: "restore", "keep" or "change".

    A clause with no cue of its own ("... and the curtains") continues the
    previous clause.
    """
    lowered = clause.lower()
    if _RESTORE_CUES.search(lowered):
        return "restore"
    if _KEEP_CUES.search(lowered):
        return "keep"
    if _CHANGE_CUES.search(lowered):
        return "change"
    return previous or "change"


def split_clauses(utterance: str) -> List[str]:
    return [c.strip() for c in _CLAUSE_SPLIT.split(utterance or "") if c and c.strip()]


def change_section(raw_instruction: str) -> str:
    """The CHANGE part of the designer's draft, without KEEP or RESTORE sections."""
    head = _KEEP_SECTION.split(raw_instruction or "", maxsplit=1)[0]
    sentences = [
        s for s in _SENTENCE_SPLIT.split(head.strip())
        if s and not _RESTORE_SENTENCE.match(s)
    ]
    return " ".join(sentences).strip()


def scope_description(description: str, targets: Iterable[str]) -> str:
    """
    Drop the clauses of the designer's CHANGE text that name elements
    outside the targets. Returns the text untouched when nothing strays.
    """
    targets = list(targets)
    clauses = [c.strip(" .;,!?") for c in _DRAFT_CLAUSE_SPLIT.split(description or "")]
    clauses = [c for c in clauses if c]
    kept = [c for c in clauses if all(element_within(e, targets) for e in elements_in(c))]
    if len(kept) == len(clauses):
        return description
    logger.info(
        "Dropped %d draft clause(s) naming elements outside %s",
        len(clauses) - len(kept), targets,
    )
    return "; ".join(kept)


def describe_preserved(element: str, targets: List[str]) -> str:
    if element == "furniture":
        pieces = [t for t in targets if t in FURNITURE_PIECES]
        if pieces:
            return f"furniture (other than the {_join(pieces)})"
    return element


# ============ Nodes ============

@traceable(name="director.interpret", run_type="chain", tags=["langgraph", "director"])
def interpret_node(state: DirectorState) -> Dict[str, Any]:
    """
    Split the utterance into change, keep and restore clauses and collect
    the elements each one names.

    Targets come from the user's own words first, then from the designer's
    CHANGE section, then fall back to the styling elements.
    """
    change_clauses: List[str] = []
    changes: List[str] = []
    keeps: List[str] = []
    restores: List[str] = []

    kind = ""
    for clause in split_clauses(state["utterance"]):
        kind = classify_clause(clause, kind)
        named = elements_in(clause)
        if kind == "restore":
            restores.extend(named)
        elif kind == "keep":
            keeps.extend(named)
        else:
            change_clauses.append(clause)
            changes.extend(named)

    raw = state["raw_instruction"] or ""
    if not _KEEP_SECTION.search(raw):
        logger.info("Designer draft has no KEEP list; building it from the original analysis")
    description = change_section(raw)

    restores = _ordered_unique(restores)
    changes = [e for e in _ordered_unique(changes) if e not in restores]
    if not changes and not restores:
        changes = [e for e in elements_in(description) if e not in keeps]
    if not changes and not restores:
        changes = list(STYLING_ELEMENTS)
    keeps = [e for e in _ordered_unique(keeps) if e not in changes and e not in restores]

    return {
        "change_clauses": change_clauses,
        "target_elements": changes,
        "keep_elements": keeps,
        "restore_elements": restores,
        "change_description": description,
    }


@traceable(name="director.contextualize", run_type="chain", tags=["langgraph", "director"])
def contextualize_node(state: DirectorState) -> Dict[str, Any]:
    """
    Drop anything that contradicts the declared room context, unless the
    user asked for it themselves, and any part of the designer's CHANGE
    text that reaches beyond the targets.
    """
    context = state["room_context"]
    utterance = state["utterance"]

    targets = list(suppress_elements(state["target_elements"], context, utterance))
    restores = state["restore_elements"]
    if not targets and not restores:
        targets = list(suppress_elements(STYLING_ELEMENTS, context, utterance))

    description = suppress_sentences(state["change_description"], context, utterance)
    description = scope_description(description, targets)
    if targets and not description:
        description = suppress_sentences("; ".join(state["change_clauses"]), context, utterance)

    if targets and not description:
        return {
            "target_elements": targets,
            "change_description": "",
            "fallback_reason": CLARIFY_TEXT,
        }

    return {"target_elements": targets, "change_description": description}


@traceable(name="director.isolate", run_type="chain", tags=["langgraph", "director"])
def isolate_node(state: DirectorState) -> Dict[str, Any]:
    """
    Resolve restorations against the original analysis and work out
    everything that must stay exactly as it is.
    """
    analysis = state["analysis"]
    features = analysis.architectural_features if analysis is not None else ()

    references: Dict[str, str] = {}
    restored_features: List[str] = []
    for element in state["restore_elements"]:
        matches = features_for_element(element, features)
        if not matches:
            logger.info("No original record for '%s'; asking instead of guessing", element)
            return {
                "fallback_reason": (
                    f"I don't have a record of the original {element} in this room, "
                    f"so I can't restore it faithfully. Could you describe the {element} "
                    "you'd like to see?"
                ),
            }
        references[element] = " and ".join(matches)
        restored_features.extend(matches)

    targets = _ordered_unique(list(state["target_elements"]) + list(state["restore_elements"]))
    target_set = set(targets)

    preserve: List[str] = []
    for feature in features:
        if feature in restored_features or set(elements_in(feature)) & target_set:
            continue
        preserve.append(feature)
    preserve.extend(e for e in COMPOSITION_ELEMENTS if e not in target_set)
    preserve.extend(state["keep_elements"])

    return {
        "restoration_references": references,
        "preserve_elements": [p for p in _ordered_unique(preserve) if p not in target_set],
    }


@traceable(name="director.compose", run_type="chain", tags=["langgraph", "director"])
def compose_node(state: DirectorState) -> Dict[str, Any]:
    """
    Write the canonical CHANGE / RESTORE / KEEP EXISTING instruction and
    validate it before it can be dispatched.
    """
    changes = list(state["target_elements"])
    restores = list(state["restore_elements"])
    preserve = list(state["preserve_elements"])
    references = state["restoration_references"]
    targets = _ordered_unique(changes + restores)

    lines: List[str] = []
    description = state["change_description"]
    if changes and description:
        if _LEADING_CHANGE.match(description):
            lines.append(_sentence(f"CHANGE {_LEADING_CHANGE.sub('', description)}"))
        else:
            lines.append(_sentence(f"CHANGE the {_join(changes)}: {description}"))
    for element in restores:
        lines.append(
            f"RESTORE the {element}: render it exactly as {references[element]}, "
            "matching the original image."
        )
    if preserve:
        kept = [describe_preserved(p, targets) for p in preserve]
        lines.append(f"KEEP EXISTING (identical to the input image): {', '.join(kept)}.")
    lines.append(CONTEXT_GUIDANCE[state["room_context"]])

    analysis = state["analysis"]
    features = analysis.architectural_features if analysis is not None else ()
    instruction = EditInstruction(
        target_elements=frozenset(targets),
        preserve_elements=frozenset(preserve),
        restoration_references=references,
        text="\n".join(lines),
        room_elements=frozenset(COMPOSITION_ELEMENTS) | frozenset(features) | frozenset(targets),
    )
    try:
        instruction.ensure_dispatchable()
    except UnderSpecifiedInstructionError as e:
        logger.warning("Composed instruction rejected: %s", e.message)
        return {"fallback_reason": CLARIFY_TEXT}

    confirmation = suppress_sentences(state["reply_text"], state["room_context"], state["utterance"])
    if not confirmation:
        confirmation = (
            f"On it: I'm updating the {_join(targets)} and keeping everything else exactly as it is."
        )
    return {"decision": DirectorDecision(confirmation_text=confirmation, instruction=instruction)}


@traceable(name="director.conversational", run_type="chain", tags=["langgraph", "director"])
def conversational_node(state: DirectorState) -> Dict[str, Any]:
    reply = suppress_sentences(state["reply_text"], state["room_context"], state["utterance"])
    return {"decision": DirectorDecision(confirmation_text=reply or FALLBACK_REPLY)}


def apologize_node(state: DirectorState) -> Dict[str, Any]:
    return {"decision": DirectorDecision(confirmation_text=APOLOGY_TEXT)}


def clarify_node(state: DirectorState) -> Dict[str, Any]:
    return {"decision": DirectorDecision(confirmation_text=state["fallback_reason"] or CLARIFY_TEXT)}
