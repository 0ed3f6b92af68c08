"""Tests for answer evaluation and attempt aggregation."""

import pytest
from packages.schemas.assessment import (
    McqQuestion,
    MultipleChoiceQuestion,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)
from services.assessment.scorer import aggregate, evaluate, score_attempt

OPTIONS = [{"id": k, "text": f"Option {k}"} for k in "ABCD"]


def mcq(correct: str = "B", marks: float = 4) -> McqQuestion:
    return McqQuestion(id=1, text="Pick one", marks=marks, options=OPTIONS, correct_answer=[correct])


def multi(partial: bool, correct=("B", "C"), marks: float = 10) -> MultipleChoiceQuestion:
    return MultipleChoiceQuestion(
        id=2, text="Pick all", marks=marks, options=OPTIONS, correct_answer=list(correct), partial_credit=partial
    )


def short(*answers: str, case_sensitive: bool = False) -> ShortAnswerQuestion:
    return ShortAnswerQuestion(id=3, text="Who?", marks=2, correct_answer=list(answers), case_sensitive=case_sensitive)


@pytest.mark.parametrize("answer", ["B", ["B"], [" B "], ["B", "ZZ"]])
def test_mcq_correct(answer) -> None:
    assert evaluate(mcq(), answer) == (4.0, True)


@pytest.mark.parametrize("answer", ["A", ["A", "B"], [], None, "", ["ZZ"], 2, {"id": "B"}])
def test_mcq_incorrect_scores_zero(answer) -> None:
    assert evaluate(mcq(), answer) == (0.0, False)


@pytest.mark.parametrize("answer", ["A", "B", "C", "D", ["A", "B"], [], None, ["ZZ"]])
def test_mcq_score_is_all_or_nothing(answer) -> None:
    score, _ = evaluate(mcq(), answer)
    assert score in (0.0, 4.0)


def test_multiple_choice_exact_match() -> None:
    assert evaluate(multi(partial=False), ["C", "B"]) == (10.0, True)
    assert evaluate(multi(partial=True), ["B", "C"]) == (10.0, True)


@pytest.mark.parametrize("answer", [["B"], ["B", "C", "D"], ["A"], ["D", "B"]])
def test_multiple_choice_without_partial_credit(answer) -> None:
    assert evaluate(multi(partial=False), answer) == (0.0, False)


def test_partial_credit_half_marks() -> None:
    assert evaluate(multi(partial=True), ["B"]) == (5.0, False)


def test_partial_credit_wrong_pick_cancels_right_pick() -> None:
    assert evaluate(multi(partial=True), ["B", "A"]) == (0.0, False)
    assert evaluate(multi(partial=True), ["A", "D"]) == (0.0, False)


def test_partial_credit_rounds_to_two_decimals() -> None:
    q = multi(partial=True, correct=("A", "B", "C"), marks=10)
    assert evaluate(q, ["A"]) == (3.33, False)
    assert evaluate(q, ["A", "B", "D"]) == (3.33, False)


@pytest.mark.parametrize("answer", [["A"], ["B"], ["A", "B"], ["A", "B", "C", "D"], ["C", "D"]])
def test_partial_credit_stays_within_marks(answer) -> None:
    score, _ = evaluate(multi(partial=True), answer)
    assert 0.0 <= score <= 10.0


def test_multiple_choice_ignores_unknown_options() -> None:
    assert evaluate(multi(partial=True), ["B", "C", "nope"]) == (10.0, True)
    assert evaluate(multi(partial=True), ["nope"]) == (0.0, False)


def test_multiple_choice_rejects_scalar_submission() -> None:
    assert evaluate(multi(partial=True), "B") == (0.0, False)


def test_true_false() -> None:
    q = TrueFalseQuestion(id=4, text="Sky is blue", marks=1, correct_answer=["true"])
    assert evaluate(q, "true") == (1.0, True)
    assert evaluate(q, ["true"]) == (1.0, True)
    assert evaluate(q, True) == (1.0, True)
    assert evaluate(q, "false") == (0.0, False)
    assert evaluate(q, "True") == (0.0, False)
    assert evaluate(q, ["true", "false"]) == (0.0, False)


def test_short_answer_case_insensitive() -> None:
    q = short("Newton")
    assert evaluate(q, "Newton") == (2.0, True)
    assert evaluate(q, "newton") == (2.0, True)
    assert evaluate(q, "  NEWTON ") == (2.0, True)
    assert evaluate(q, "Einstein") == (0.0, False)


def test_short_answer_case_sensitive() -> None:
    q = short("Newton", case_sensitive=True)
    assert evaluate(q, " Newton ") == (2.0, True)
    assert evaluate(q, "newton") == (0.0, False)


def test_short_answer_any_acceptable_answer() -> None:
    q = short("H2O", "water")
    assert evaluate(q, "Water") == (2.0, True)


@pytest.mark.parametrize("answer", [["Newton"], None, "", "   ", 42])
def test_short_answer_malformed_or_empty(answer) -> None:
    assert evaluate(short("Newton"), answer) == (0.0, False)


def test_aggregate_empty() -> None:
    totals = aggregate([])
    assert totals.total_score == 0
    assert totals.total_marks == 0
    assert totals.percentage == 0


def test_aggregate_percentage_rounds() -> None:
    totals = aggregate([(3, 1), (3, 1), (3, 0)])
    assert totals.total_score == 2
    assert totals.total_marks == 9
    assert totals.percentage == 22.22


def test_score_attempt_counts_missing_answers_as_empty() -> None:
    questions = [mcq(), multi(partial=True), short("Newton")]
    results, totals = score_attempt(questions, {1: "B", 2: ["C"], 99: "ignored"})
    assert [r.question_id for r in results] == [1, 2, 3]
    assert [r.score for r in results] == [4.0, 5.0, 0.0]
    assert results[2].answer is None
    assert totals.total_score == 9.0
    assert totals.total_marks == 16.0
    assert totals.percentage == 56.25
