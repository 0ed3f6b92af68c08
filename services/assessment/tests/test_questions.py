"""Authoring-time validation of question definitions."""

import pytest
from pydantic import TypeAdapter, ValidationError
from packages.schemas.assessment import (
    McqQuestion,
    MultipleChoiceQuestion,
    Question,
    QuizCreate,
    QuizUpdate,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)

question_adapter = TypeAdapter(Question)
OPTIONS = [{"id": "A", "text": "one"}, {"id": "B", "text": "two"}, {"id": "C", "text": "three"}]


def test_dispatches_on_type_tag() -> None:
    q = question_adapter.validate_python(
        {"type": "short_answer", "text": "Capital of France?", "marks": 1, "correct_answer": ["Paris"]}
    )
    assert isinstance(q, ShortAnswerQuestion)
    q = question_adapter.validate_python(
        {"type": "multiple_choice", "text": "Primes?", "marks": 2, "options": OPTIONS, "correct_answer": ["A", "B"]}
    )
    assert isinstance(q, MultipleChoiceQuestion)


def test_unknown_type_rejected() -> None:
    with pytest.raises(ValidationError):
        question_adapter.validate_python({"type": "essay", "text": "Discuss", "marks": 5, "correct_answer": ["x"]})


def test_mcq_needs_exactly_one_correct_answer() -> None:
    with pytest.raises(ValidationError):
        McqQuestion(text="q", marks=1, options=OPTIONS, correct_answer=["A", "B"])
    with pytest.raises(ValidationError):
        McqQuestion(text="q", marks=1, options=OPTIONS, correct_answer=[])


def test_correct_answer_must_be_an_option() -> None:
    with pytest.raises(ValidationError, match="does not match any option"):
        McqQuestion(text="q", marks=1, options=OPTIONS, correct_answer=["Z"])


def test_multiple_choice_cannot_mark_every_option_correct() -> None:
    with pytest.raises(ValidationError, match="cannot have all options"):
        MultipleChoiceQuestion(text="q", marks=1, options=OPTIONS, correct_answer=["A", "B", "C"])


def test_choice_option_count_limits() -> None:
    with pytest.raises(ValidationError):
        McqQuestion(text="q", marks=1, options=OPTIONS[:1], correct_answer=["A"])
    seven = [{"id": str(i), "text": f"opt {i}"} for i in range(7)]
    with pytest.raises(ValidationError):
        McqQuestion(text="q", marks=1, options=seven, correct_answer=["0"])


def test_duplicate_option_ids_rejected() -> None:
    with pytest.raises(ValidationError, match="unique"):
        McqQuestion(text="q", marks=1, options=[{"id": "A", "text": "x"}, {"id": "A", "text": "y"}], correct_answer=["A"])


def test_blank_options_dropped_and_missing_ids_labelled() -> None:
    q = McqQuestion(
        text="q",
        marks=1,
        options=[{"text": " first "}, {"id": "", "text": "second"}, {"id": "X", "text": "   "}],
        correct_answer=["B", "  "],
    )
    assert [(o.id, o.text) for o in q.options] == [("A", "first"), ("B", "second")]
    assert q.correct_answer == ["B"]


def test_true_false_has_fixed_options() -> None:
    q = TrueFalseQuestion(text="q", marks=1, options=[{"id": "yes", "text": "Yes"}], correct_answer=[False])
    assert [o.id for o in q.options] == ["true", "false"]
    assert q.correct_answer == ["false"]
    with pytest.raises(ValidationError):
        TrueFalseQuestion(text="q", marks=1, correct_answer=["maybe"])
    with pytest.raises(ValidationError):
        TrueFalseQuestion(text="q", marks=1, correct_answer=["true", "false"])


def test_short_answer_limits() -> None:
    with pytest.raises(ValidationError):
        ShortAnswerQuestion(text="q", marks=1, correct_answer=[])
    with pytest.raises(ValidationError):
        ShortAnswerQuestion(text="q", marks=1, correct_answer=[str(i) for i in range(6)])
    with pytest.raises(ValidationError, match="Duplicate"):
        ShortAnswerQuestion(text="q", marks=1, correct_answer=["Paris", " Paris "])


@pytest.mark.parametrize("marks", [0, 0.05, -1, 100.5])
def test_marks_range(marks) -> None:
    with pytest.raises(ValidationError):
        ShortAnswerQuestion(text="q", marks=marks, correct_answer=["a"])


def test_text_required_and_bounded() -> None:
    with pytest.raises(ValidationError):
        ShortAnswerQuestion(text="", marks=1, correct_answer=["a"])
    with pytest.raises(ValidationError):
        ShortAnswerQuestion(text="x" * 2001, marks=1, correct_answer=["a"])


def test_blank_explanation_becomes_none() -> None:
    q = ShortAnswerQuestion(text="q", marks=1, correct_answer=["a"], explanation="  ")
    assert q.explanation is None


def test_quiz_window_must_be_ordered() -> None:
    with pytest.raises(ValidationError):
        QuizCreate(title="Week 1", start_time="2025-06-10T10:00:00Z", end_time="2025-06-10T09:00:00Z")
    # naive bounds are read as UTC
    quiz = QuizCreate(title="Week 1", start_time="2025-06-10T10:00:00", end_time="2025-06-10T11:00:00Z")
    assert quiz.start_time.tzinfo is None


@pytest.mark.parametrize("field, value", [
    ("description", "d" * 1001),
    ("instructions", "i" * 2001),
    ("duration_minutes", 481),
    ("duration_minutes", 0),
    ("max_attempts", 11),
    ("pass_marks", -1),
])
def test_quiz_setting_bounds(field, value) -> None:
    with pytest.raises(ValidationError):
        QuizCreate(title="Week 1", **{field: value})
    with pytest.raises(ValidationError):
        QuizUpdate(**{field: value})


def test_quiz_setting_upper_limits_accepted() -> None:
    quiz = QuizCreate(title="Week 1", description="d" * 1000, instructions="i" * 2000, duration_minutes=480, max_attempts=10)
    assert quiz.duration_minutes == 480
    assert quiz.max_attempts == 10


@pytest.mark.parametrize("field", ["title", "shuffle_questions", "shuffle_options", "show_results_immediately", "allow_review"])
def test_quiz_update_rejects_null_for_required_settings(field) -> None:
    with pytest.raises(ValidationError):
        QuizUpdate(**{field: None})


def test_quiz_update_allows_clearing_optional_settings() -> None:
    changes = QuizUpdate(description=None, max_attempts=None, end_time=None)
    assert changes.model_dump(exclude_unset=True) == {"description": None, "max_attempts": None, "end_time": None}
    assert QuizUpdate().model_dump(exclude_unset=True) == {}
