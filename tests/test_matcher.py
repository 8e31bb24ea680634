"""Tests for tokenizing, lexical scoring, and candidate matching."""

from ids.analyzers.matcher import LexicalScorer, Matcher, stem, terms, tokenize
from ids.config import IdsConfig
from ids.registry.models import Entity, Registry


def _entity(entity_id: str, description: str = "", type: str = "script", **kwargs) -> Entity:
    return Entity(
        id=entity_id,
        path=kwargs.pop("path", f"{type}s/{entity_id}"),
        type=type,
        description=description,
        **kwargs,
    )


# --- Tokenizing ---


def test_stem_collapses_inflections():
    assert stem("validate") == stem("validates") == stem("validation") == stem("validating")
    assert stem("drafts") == "draft"
    assert stem("stories") == "story"
    assert stem("templates") == stem("template")
    assert stem("process") == "process"
    assert stem("use") == "use"


def test_tokenize_drops_stop_words_and_numbers():
    pairs = tokenize("Validate the story-draft against schema 01")
    assert [w for w, _ in pairs] == ["validate", "story", "draft", "schema"]


def test_terms_split_identifiers_and_paths():
    assert terms("script-validate-01") == ["script", "validat"]
    assert terms("scripts/render_template.py") == ["script", "render", "templat", "py"]


# --- Scoring ---


def test_exact_phrase_scores_full_relevance():
    scorer = LexicalScorer()
    score = scorer.score(
        "validate story drafts", "validates story draft markdown against schema"
    )
    assert score == 1.0


def test_phrase_overlap_beats_scattered_terms():
    scorer = LexicalScorer()
    phrase = scorer.score("story draft", "story draft checker")
    scattered = scorer.score("story draft", "draft of a long story")
    assert phrase > scattered


def test_score_is_monotonic_in_coverage():
    scorer = LexicalScorer()
    entity_text = "render html email templates"
    one = scorer.score("render pdf invoices", entity_text)
    two = scorer.score("render html invoices", entity_text)
    three = scorer.score("render html templates", entity_text)
    assert one < two < three


def test_phrases_do_not_cross_lines():
    scorer = LexicalScorer(phrase_weight=0.5)
    same_line = scorer.score("story draft", "story draft")
    split = scorer.score("story draft", "story\ndraft")
    assert same_line == 1.0
    assert split == 0.5


def test_no_overlap_scores_zero():
    assert LexicalScorer().score("deploy kubernetes cluster", "validates story drafts") == 0.0


def test_stop_word_only_intent_scores_zero():
    assert LexicalScorer().score("the of and", "anything at all") == 0.0


def test_score_is_stable():
    scorer = LexicalScorer()
    scores = {scorer.score("template rendering engine", "renders templates with an engine") for _ in range(5)}
    assert len(scores) == 1


# --- Matching ---


def test_match_ranks_by_score_then_id():
    registry = Registry.build(
        [
            _entity("b-validator", "validates story drafts"),
            _entity("a-validator", "validates story drafts"),
            _entity("renderer", "renders templates"),
        ]
    )
    result = Matcher(registry).match("validate story drafts")

    assert [c.entity.id for c in result.matches] == ["a-validator", "b-validator"]
    assert [c.entity.id for c in result.evaluated] == ["a-validator", "b-validator", "renderer"]
    assert result.considered == 3


def test_match_discards_below_floor_but_keeps_evaluated():
    registry = Registry.build([_entity("renderer", "renders templates")])
    result = Matcher(registry, IdsConfig(min_relevance=0.4)).match("deploy kubernetes cluster")

    assert result.matches == []
    assert [c.entity.id for c in result.evaluated] == ["renderer"]
    assert result.evaluated[0].score == 0.0
    assert result.evaluated[0].matched_terms == []


def test_match_records_matched_intent_words():
    registry = Registry.build([_entity("checker", "checks story drafts")])
    result = Matcher(registry).match("validate story drafts")
    assert result.evaluated[0].matched_terms == ["story", "drafts"]


def test_type_filter_applies_before_scoring():
    registry = Registry.build(
        [
            _entity("validate-script", "validates story drafts", type="script"),
            _entity("validate-task", "validates story drafts", type="task"),
        ]
    )
    result = Matcher(registry).match("validate story drafts", type_filter="task")
    assert result.considered == 1
    assert [c.entity.type for c in result.evaluated] == ["task"]


def test_category_filter_is_exact_match():
    registry = Registry.build(
        [
            _entity("a", "validates story drafts", category="qa"),
            _entity("b", "validates story drafts", category="qa-extra"),
        ]
    )
    result = Matcher(registry).match("validate story drafts", category="qa")
    assert [c.entity.id for c in result.evaluated] == ["a"]


def test_empty_registry_yields_no_matches():
    result = Matcher(Registry.build([])).match("anything")
    assert result.matches == []
    assert result.evaluated == []
    assert result.considered == 0


def test_malformed_entity_is_skipped_with_warning():
    registry = Registry.build(
        [
            _entity("broken", description=42),
            _entity("good", "validates story drafts"),
        ]
    )
    result = Matcher(registry).match("validate story drafts")

    assert [c.entity.id for c in result.evaluated] == ["good"]
    assert len(result.warnings) == 1
    assert "broken" in result.warnings[0]


def test_custom_scorer_is_used():
    class ConstantScorer:
        def score(self, intent_text, entity_text):
            return 0.5

    registry = Registry.build([_entity("x", "anything")])
    result = Matcher(registry, scorer=ConstantScorer()).match("unrelated words")
    assert result.matches[0].score == 0.5
