"""
Context-appropriateness rules.

A Commercial space never gets beds or bedroom furniture, a Residential one
never gets cubicles or boardroom furniture, unless the user asked for them
in their own words.
"""

import re
from typing import Iterable, Tuple

from lumina.models.room import RoomAnalysis, RoomContext
from lumina.vision.labels import tokenize


# Terms that contradict each declared context.
FORBIDDEN_TERMS = {
    RoomContext.COMMERCIAL: {
        "bed", "beds", "bedroom", "bedrooms", "nightstand", "nightstands",
        "headboard", "headboards", "bedding", "duvet", "crib", "cribs",
        "bunk bed", "bedside table", "night stand",
    },
    RoomContext.RESIDENTIAL: {
        "cubicle", "cubicles", "workstation", "workstations", "boardroom",
        "conference table", "conference tables", "reception desk",
        "office partition", "office partitions", "hot desk", "hot desks",
    },
}

# Canonical elements (see labels.py) that contradict each context.
FORBIDDEN_ELEMENTS = {
    RoomContext.COMMERCIAL: {"bed", "nightstand"},
    RoomContext.RESIDENTIAL: set(),
}

CONTEXT_GUIDANCE = {
    RoomContext.COMMERCIAL: "Keep every addition appropriate for a professional commercial space.",
    RoomContext.RESIDENTIAL: "Keep every addition appropriate for a residential home.",
}

_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")


def _phrases(text: str) -> set[str]:
    tokens = tokenize(text)
    bigrams = {f"{a} {b}" for a, b in zip(tokens, tokens[1:])}
    return set(tokens) | bigrams


def mentions_forbidden(text: str, context: RoomContext) -> bool:
    return bool(_phrases(text) & FORBIDDEN_TERMS[context])


def is_overridden(context: RoomContext, utterance: str) -> bool:
    """The user explicitly asked for something the context normally rules out."""
    return mentions_forbidden(utterance, context)


def suppress_sentences(text: str, context: RoomContext, utterance: str = "") -> str:
    """Drop sentences that introduce elements contradicting the context."""
    if not text or is_overridden(context, utterance):
        return text
    sentences = _SENTENCE_RE.split(text.strip())
    kept = [s for s in sentences if not mentions_forbidden(s, context)]
    return " ".join(kept).strip()


def suppress_elements(
    elements: Iterable[str], context: RoomContext, utterance: str = ""
) -> Tuple[str, ...]:
    if is_overridden(context, utterance):
        return tuple(elements)
    forbidden = FORBIDDEN_ELEMENTS[context]
    return tuple(e for e in elements if e not in forbidden)


def filter_analysis(analysis: RoomAnalysis, context: RoomContext) -> RoomAnalysis:
    """Remove decor suggestions and suggested prompts that contradict the context."""
    suggestions = tuple(
        s for s in analysis.decor_suggestions if not mentions_forbidden(s, context)
    )
    prompts = tuple(
        p for p in analysis.suggested_prompts
        if not mentions_forbidden(f"{p.title} {p.description} {p.prompt}", context)
    )
    if suggestions == analysis.decor_suggestions and prompts == analysis.suggested_prompts:
        return analysis
    return analysis.model_copy(update={
        "decor_suggestions": suggestions,
        "suggested_prompts": prompts,
    })
