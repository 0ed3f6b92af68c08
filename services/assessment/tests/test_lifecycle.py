"""Lifecycle rules, question ordering/display and report builders."""

import random
from datetime import datetime, timedelta, timezone
from packages.schemas.assessment import McqQuestion, ShortAnswerQuestion, TrueFalseQuestion
from services.assessment.lifecycle import can_edit, has_passed, is_available, time_taken
from services.assessment.randomizer import display_question, order_questions, prepare_for_display
from services.assessment.reports import difficulty_level, question_stats, quiz_report, student_progress

NOW = datetime(2025, 6, 10, 12, 0, tzinfo=timezone.utc)
HOUR = timedelta(hours=1)


def test_only_active_quizzes_are_available() -> None:
    assert is_available("active", None, None, NOW)
    assert not is_available("draft", None, None, NOW)
    assert not is_available("archived", None, None, NOW)


def test_availability_window() -> None:
    assert is_available("active", NOW - HOUR, NOW + HOUR, NOW)
    assert not is_available("active", NOW + HOUR, None, NOW)
    assert not is_available("active", None, NOW - HOUR, NOW)
    # naive timestamps are taken as UTC
    assert is_available("active", datetime(2025, 6, 10, 11, 0), datetime(2025, 6, 10, 13, 0), NOW)


def test_can_edit() -> None:
    assert can_edit("draft", 3)
    assert can_edit("active", 0)
    assert not can_edit("active", 1)
    assert not can_edit("archived", 0)


def test_has_passed_prefers_pass_marks() -> None:
    assert has_passed(6, 40.0, pass_marks=6, pass_percentage=50)
    assert not has_passed(5.5, 90.0, pass_marks=6, pass_percentage=50)
    assert has_passed(1, 50.0, pass_marks=None, pass_percentage=50)
    assert not has_passed(1, 49.99, pass_marks=None, pass_percentage=50)


def test_time_taken() -> None:
    assert time_taken(NOW, NOW + timedelta(minutes=2, seconds=5)) == 125
    assert time_taken(NOW, None) is None


def _questions():
    return [
        ShortAnswerQuestion(id=3, order=2, text="c", marks=1, correct_answer=["x"]),
        McqQuestion(
            id=1, order=0, text="a", marks=1, explanation="because",
            options=[{"id": k, "text": k.lower()} for k in "ABCDEF"], correct_answer=["A"],
        ),
        TrueFalseQuestion(id=2, order=1, text="b", marks=1, correct_answer=["true"]),
    ]


def test_questions_keep_authoring_order_without_shuffle() -> None:
    assert [q.id for q in order_questions(_questions(), shuffle=False)] == [1, 2, 3]


def test_shuffle_is_a_permutation() -> None:
    ordered = order_questions(_questions(), shuffle=True, rng=random.Random(7))
    assert sorted(q.id for q in ordered) == [1, 2, 3]


def test_display_hides_answers() -> None:
    shown = prepare_for_display(_questions())
    for d in shown:
        dumped = d.model_dump()
        assert "correct_answer" not in dumped
        assert "explanation" not in dumped
    assert shown[0].options is None


def test_display_shuffles_choice_options_but_not_true_false() -> None:
    qs = _questions()
    mcq = display_question(qs[1], shuffle_options=True, rng=random.Random(3))
    assert sorted(o.id for o in mcq.options) == list("ABCDEF")
    tf = display_question(qs[2], shuffle_options=True, rng=random.Random(3))
    assert [o.id for o in tf.options] == ["true", "false"]


def test_difficulty_levels() -> None:
    assert difficulty_level(80) == "Easy"
    assert difficulty_level(79.9) == "Medium"
    assert difficulty_level(60) == "Medium"
    assert difficulty_level(10) == "Hard"


def test_question_stats() -> None:
    stats = question_stats(7, [True, True, False])
    assert stats.attempts == 3
    assert stats.correct_attempts == 2
    assert stats.correct_percentage == 66.67
    assert stats.difficulty_level == "Medium"
    empty = question_stats(8, [])
    assert empty.correct_percentage == 0
    assert empty.difficulty_level == "Hard"


def test_quiz_report() -> None:
    report = quiz_report(1, 4, [(80.0, True), (40.0, False), (60.0, True)], {10: [True, False]})
    assert report.total_attempts == 4
    assert report.completed_attempts == 3
    assert report.average_score == 60.0
    assert report.highest_score == 80.0
    assert report.lowest_score == 40.0
    assert report.pass_rate == 66.67
    assert [q.question_id for q in report.questions] == [10]


def test_empty_reports() -> None:
    report = quiz_report(1, 0, [], {})
    assert report.average_score == report.pass_rate == 0
    progress = student_progress("s-1", [])
    assert progress.completed_attempts == 0
    assert progress.average_score == 0


def test_student_progress() -> None:
    progress = student_progress("s-1", [50.0, 75.0])
    assert progress.average_score == 62.5
    assert progress.highest_score == 75.0
    assert progress.lowest_score == 50.0
