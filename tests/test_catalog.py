"""
Tests for the quiz catalog and schema.
"""

import json

import pytest

from assessment_engine.errors import QuizNotFound
from assessment_engine.quiz.catalog import CATALOG, QuizCatalog, get_quiz, NOSE
from assessment_engine.quiz.schema import (
    Answer,
    CountRule,
    Option,
    PointSumRule,
    Question,
    QuizDefinition,
    answers_from_dicts,
    answers_to_dicts,
)


class TestQuizCatalog:
    """Tests for catalog lookup."""

    def test_contains_all_quizzes(self):
        """Test the seven instruments are registered."""
        assert sorted(CATALOG.ids()) == sorted(
            ["SNOT22", "NOSE", "HHIA", "EPWORTH", "DHI", "STOP", "TNSS"]
        )
        assert len(CATALOG) == 7

    def test_lookup_is_case_insensitive(self):
        """Test ids from URLs match in any case."""
        assert CATALOG.get("nose") is CATALOG.get("NOSE")
        assert CATALOG.get(" Snot22 ").id == "SNOT22"
        assert "epworth" in CATALOG

    def test_unknown_quiz_raises(self):
        """Test unknown ids raise QuizNotFound with a user-safe message."""
        with pytest.raises(QuizNotFound) as exc_info:
            CATALOG.get("PHQ9")

        assert exc_info.value.quiz_id == "PHQ9"
        assert exc_info.value.user_message == "This assessment is currently unavailable."

    def test_empty_id_raises(self):
        """Test empty and None ids are treated as unknown."""
        with pytest.raises(QuizNotFound):
            CATALOG.get("")
        with pytest.raises(QuizNotFound):
            get_quiz(None)

    def test_contains_rejects_non_strings(self):
        """Test membership on non-string values."""
        assert 5 not in CATALOG

    def test_custom_catalog(self):
        """Test a catalog can be built from a subset."""
        catalog = QuizCatalog([NOSE])
        assert catalog.ids() == ["NOSE"]
        with pytest.raises(QuizNotFound):
            catalog.get("STOP")


class TestCatalogConsistency:
    """Tests that each definition agrees with its own options."""

    @pytest.mark.parametrize("quiz", CATALOG.all(), ids=lambda q: q.id)
    def test_max_score_matches_options(self, quiz):
        """Test max_score equals the best achievable score."""
        if isinstance(quiz.rule, CountRule):
            assert quiz.max_score == quiz.question_count
        else:
            assert quiz.max_score == sum(q.max_value for q in quiz.questions) * quiz.rule.multiplier

    @pytest.mark.parametrize("quiz", CATALOG.all(), ids=lambda q: q.id)
    def test_question_ids_unique(self, quiz):
        """Test question ids are unique within a quiz."""
        ids = [q.id for q in quiz.questions]
        assert len(ids) == len(set(ids))

    @pytest.mark.parametrize("quiz", CATALOG.all(), ids=lambda q: q.id)
    def test_question_texts_unique(self, quiz):
        """Test no question is asked twice."""
        texts = [q.text for q in quiz.questions]
        assert len(texts) == len(set(texts))

    @pytest.mark.parametrize("quiz", CATALOG.all(), ids=lambda q: q.id)
    def test_bands_are_ordered(self, quiz):
        """Test band thresholds are distinct and above the normal band."""
        minimums = [b.minimum for b in quiz.rule.bands]
        assert len(minimums) == len(set(minimums))
        assert all(m > quiz.rule.normal.minimum for m in minimums)

    def test_question_counts(self):
        """Test instrument lengths."""
        counts = {q.id: q.question_count for q in CATALOG}
        assert counts == {
            "SNOT22": 22,
            "NOSE": 5,
            "HHIA": 25,
            "EPWORTH": 8,
            "DHI": 25,
            "STOP": 8,
            "TNSS": 4,
        }

    def test_rule_kinds(self):
        """Test only STOP uses the count rule."""
        kinds = {q.id: q.rule.kind for q in CATALOG}
        assert kinds.pop("STOP") == "count"
        assert set(kinds.values()) == {"point_sum"}


class TestSchema:
    """Tests for schema invariants."""

    def test_negative_option_value_rejected(self):
        """Test options cannot carry negative weights."""
        with pytest.raises(ValueError):
            Option(label="Bad", value=-1)

    def test_question_requires_options(self):
        """Test a question without options is rejected."""
        with pytest.raises(ValueError):
            Question(id="1", text="Empty?", options=())

    def test_quiz_requires_questions(self):
        """Test a quiz without questions is rejected."""
        with pytest.raises(ValueError):
            QuizDefinition(
                id="EMPTY",
                title="Empty",
                description="",
                max_score=0,
                questions=(),
                rule=NOSE.rule,
            )

    def test_definitions_are_frozen(self):
        """Test quiz definitions cannot be mutated."""
        with pytest.raises(Exception):
            NOSE.max_score = 99

    def test_option_for_is_exact(self):
        """Test option lookup requires an exact label."""
        question = NOSE.questions[0]
        assert question.option_for("4 - Severe").value == 4
        assert question.option_for("4 - severe") is None
        assert question.option_for("Severe") is None

    def test_question_round_trip(self):
        """Test question serialization."""
        question = NOSE.questions[2]
        assert Question.from_dict(question.to_dict()) == question

    def test_quiz_to_json(self):
        """Test quiz JSON export includes rule kind and options."""
        data = json.loads(NOSE.to_json())
        assert data["id"] == "NOSE"
        assert data["scoring"] == "point_sum"
        assert len(data["questions"]) == 5
        assert data["questions"][0]["options"][-1] == {"label": "4 - Severe", "value": 4}

    def test_answer_storage_format(self):
        """Test answers serialize to the stored lead format."""
        answers = [Answer("1", "Yes"), Answer("2", "No")]
        data = answers_to_dicts(answers)

        assert data == [
            {"question_id": "1", "answer": "Yes"},
            {"question_id": "2", "answer": "No"},
        ]
        assert answers_from_dicts(data) == answers

    def test_answer_from_dict_accepts_selected_label(self):
        """Test the alternate key is accepted when rebuilding answers."""
        answer = Answer.from_dict({"question_id": 3, "selected_label": "Sometimes"})
        assert answer == Answer("3", "Sometimes")

    def test_point_sum_rule_defaults(self):
        """Test point-sum rules band by percentage unless told otherwise."""
        rule = PointSumRule(bands=(), normal=NOSE.rule.normal)
        assert rule.basis.value == "percentage"
        assert rule.per_question_max is None
        assert rule.multiplier == 1
