"""Tests for record completeness scoring."""

import pytest

from velocore.deduplication.completeness import (
    CompletenessScorer,
    calculate_completeness,
    completeness_band,
    completeness_status,
    has_field,
    missing_fields,
)
from velocore.deduplication.content_processors import (
    ColProcessor,
    RecipeProcessor,
    TrainingPlanProcessor,
)


@pytest.fixture
def complete_col():
    return {
        "id": "col-du-galibier",
        "name": "Col du Galibier",
        "slug": "col-du-galibier",
        "country": "France",
        "region": "Alpes",
        "altitude": 2642,
        "length": 18.1,
        "gradient": 6.9,
        "difficulty": "hard",
        "description": {"fr": "Un col mythique", "en": "A legendary climb"},
        "coordinates": [45.0640, 6.4078],
        "elevation_profile": [{"km": 0, "altitude": 1400}],
        "images": ["galibier.jpg"],
    }


class TestHasField:
    """Presence rules."""

    def test_present_values(self):
        record = {"a": "text", "b": 0, "c": False, "d": [1], "e": {"k": "v"}}
        for field in "abcde":
            assert has_field(record, field)

    def test_empty_values(self):
        record = {"a": None, "b": "", "c": "  ", "d": [], "e": {}}
        for field in "abcdef":
            assert not has_field(record, field)

    def test_dotted_path(self):
        record = {"description": {"fr": "Texte", "en": ""}}

        assert has_field(record, "description.fr")
        assert not has_field(record, "description.en")
        assert not has_field(record, "description.de")
        assert not has_field({"description": "flat"}, "description.fr")

    def test_aliases(self):
        processor = ColProcessor()

        assert has_field({"elevation": 1909}, "altitude", processor)
        assert has_field({"avgGradient": 7.6}, "gradient", processor)
        assert not has_field({"elevation": 1909}, "altitude")


class TestCalculateCompleteness:
    """Percentage of expected fields present."""

    def test_complete_record(self, complete_col):
        expected = ColProcessor().get_expected_fields()

        assert calculate_completeness(complete_col, expected) == 100

    def test_empty_record(self):
        assert calculate_completeness({}, ["id", "name"]) == 0

    def test_no_expected_fields(self, complete_col):
        assert calculate_completeness(complete_col, []) == 0

    def test_rounded_percentage(self):
        assert calculate_completeness({"id": "a"}, ["id", "name", "slug"]) == 33
        assert calculate_completeness({"id": "a", "name": "A"}, ["id", "name", "slug"]) == 67

    def test_zero_counts_as_present(self):
        assert calculate_completeness({"gradient": 0, "featured": False}, ["gradient", "featured"]) == 100

    def test_dotted_expected_fields(self):
        record = {"description": {"fr": "Texte"}}

        assert calculate_completeness(record, ["description.fr", "description.en"]) == 50

    def test_monotonic(self, complete_col):
        """Adding a missing field never lowers the score."""
        expected = ColProcessor().get_expected_fields()
        record = {}
        previous = calculate_completeness(record, expected)

        for field in expected:
            record[field] = complete_col[field]
            score = calculate_completeness(record, expected)
            assert score >= previous
            previous = score

        assert previous == 100

    def test_ventoux_with_elevation_alias(self):
        record = {"id": "mont-ventoux", "name": "Mont Ventoux", "elevation": 1909,
                  "coordinates": [44.1741, 5.2788]}
        processor = ColProcessor()

        score = calculate_completeness(record, processor.get_expected_fields(), processor)

        assert score == round(4 * 100 / 13)


class TestMissingFields:

    def test_missing_fields(self):
        processor = TrainingPlanProcessor()
        record = {"id": "p", "name": "Plan", "slug": "plan", "difficulty": "easy", "weeks": []}

        assert missing_fields(record, processor.get_expected_fields(), processor) == [
            "duration", "description", "weeks", "sessions"
        ]


class TestStatusAndBand:
    """Threshold boundaries."""

    @pytest.mark.parametrize("score,status", [
        (0, "incomplete"), (49, "incomplete"), (50, "partial"),
        (79, "partial"), (80, "ready"), (100, "ready"),
    ])
    def test_status(self, score, status):
        assert completeness_status(score) == status

    @pytest.mark.parametrize("score,band", [
        (0, "minimal"), (39, "minimal"), (40, "partial"), (69, "partial"),
        (70, "good"), (89, "good"), (90, "excellent"), (100, "excellent"),
    ])
    def test_band(self, score, band):
        assert completeness_band(score) == band


class TestCompletenessScorer:
    """Processor-backed scorer."""

    def test_default_expected_fields(self):
        scorer = CompletenessScorer(RecipeProcessor())

        assert scorer.expected_fields == RecipeProcessor().get_expected_fields()

    def test_override_expected_fields(self):
        scorer = CompletenessScorer(RecipeProcessor(), ["id", "name"])

        assert scorer.score({"id": "r1", "name": "Rice Cake"}) == 100
        assert scorer.missing({"id": "r1"}) == ["name"]

    def test_recipe_aliases(self):
        scorer = CompletenessScorer(RecipeProcessor(), ["nutrition_facts", "image"])

        assert scorer.score({"nutritionFacts": {"kcal": 210}, "images": ["a.jpg"]}) == 100
