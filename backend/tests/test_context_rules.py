"""
Tests for element labels and context-appropriateness rules

Run with: pytest tests/test_context_rules.py -v
"""

from lumina.models.room import RoomContext, SuggestedPrompt
from lumina.vision.context_rules import (
    filter_analysis,
    is_overridden,
    mentions_forbidden,
    suppress_elements,
    suppress_sentences,
)
from lumina.vision.labels import elements_in, features_for_element, normalize_element


# ============ Labels ============

def test_synonyms_normalize_to_canonical_elements():
    assert normalize_element("Couch") == "sofa"
    assert normalize_element("carpet") == "rug"
    assert normalize_element("flooring") == "floor"
    assert normalize_element("floor_lamp") == "lighting"
    assert normalize_element("spaceship") is None
    print("✓ Synonyms normalized")


def test_two_word_phrases_win():
    assert elements_in("hang some wall art") == ("artwork",)
    assert elements_in("add a floor lamp by the couch") == ("lighting", "sofa")


def test_hyphenated_compounds_are_one_token():
    assert elements_in("Floor-to-ceiling glass windows") == ("windows",)


def test_features_for_element(sample_analysis):
    features = sample_analysis.architectural_features
    assert features_for_element("floor", features) == ("Herringbone oak flooring",)
    assert features_for_element("walls", features) == ("White drywall",)
    assert features_for_element("fireplace", features) == ()


# ============ Context rules ============

def test_forbidden_terms_per_context():
    assert mentions_forbidden("Add a king bed", RoomContext.COMMERCIAL)
    assert mentions_forbidden("Add a bedside table", RoomContext.COMMERCIAL)
    assert not mentions_forbidden("Add a king bed", RoomContext.RESIDENTIAL)
    assert mentions_forbidden("Install two cubicles", RoomContext.RESIDENTIAL)
    assert mentions_forbidden("A large conference table", RoomContext.RESIDENTIAL)
    assert not mentions_forbidden("A large dining table", RoomContext.RESIDENTIAL)


def test_bedrock_is_not_a_bed():
    assert not mentions_forbidden("Bedrock grey paint", RoomContext.COMMERCIAL)


def test_suppress_sentences():
    text = "Let's add a plush bed. Warm lamps will help. A nightstand too!"
    assert suppress_sentences(text, RoomContext.COMMERCIAL) == "Warm lamps will help."


def test_user_override_keeps_everything():
    text = "Let's add a plush bed. Warm lamps will help."
    utterance = "I want a bed in the lounge"
    assert is_overridden(RoomContext.COMMERCIAL, utterance)
    assert suppress_sentences(text, RoomContext.COMMERCIAL, utterance) == text
    assert suppress_elements(["bed", "lighting"], RoomContext.COMMERCIAL, utterance) == ("bed", "lighting")


def test_suppress_elements():
    assert suppress_elements(["bed", "lighting", "nightstand"], RoomContext.COMMERCIAL) == ("lighting",)
    assert suppress_elements(["bed", "lighting"], RoomContext.RESIDENTIAL) == ("bed", "lighting")


def test_filter_analysis_removes_contradicting_suggestions(sample_analysis):
    analysis = sample_analysis.model_copy(update={
        "decor_suggestions": ("Add a daybed with bedding", "Add acoustic panels"),
        "suggested_prompts": sample_analysis.suggested_prompts + (
            SuggestedPrompt(title="Sleepy", description="Bedroom vibes", prompt="CHANGE the lounge to a bedroom."),
        ),
    })

    filtered = filter_analysis(analysis, RoomContext.COMMERCIAL)

    assert filtered.decor_suggestions == ("Add acoustic panels",)
    assert [p.title for p in filtered.suggested_prompts] == ["Warm Minimal"]
    assert filtered.architectural_features == analysis.architectural_features


def test_filter_analysis_unchanged_returns_same_object(sample_analysis):
    assert filter_analysis(sample_analysis, RoomContext.RESIDENTIAL) is sample_analysis
