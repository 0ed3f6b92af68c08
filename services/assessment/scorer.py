"""Scoring utilities for Assessment service.

Functions:
- score_mcq: single-select choice question, full marks or nothing.
- score_multiple_choice: multi-select question with optional partial credit.
- score_true_false: exact match on "true"/"false".
- score_short_answer: trimmed text match against the acceptable answers.
- evaluate: dispatch on question type, returns (score, is_correct).
- aggregate: total score, total marks and percentage of an attempt.
- score_attempt: evaluate a whole quiz and aggregate it.

Submissions are raw JSON values. Anything of the wrong shape scores 0 instead
of raising, so grading an attempt never fails on bad input.
"""

from packages.schemas.assessment import (
    AnswerResult,
    AttemptTotals,
    McqQuestion,
    MultipleChoiceQuestion,
    Question,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)
from typing import Any, Iterable, List, Mapping, Optional, Tuple

Result = Tuple[float, bool]
NO_CREDIT: Result = (0.0, False)


def _selection(ans: Any, allow_scalar: bool = True) -> Optional[List[str]]:
    """Normalize a choice submission to a list of strings; None if malformed."""
    if ans is None:
        return []
    if isinstance(ans, str):
        return [ans] if allow_scalar else None
    if isinstance(ans, (list, tuple)) and all(isinstance(a, str) for a in ans):
        return list(ans)
    return None


def _chosen(ans: Any, known: set[str], allow_scalar: bool = True) -> Optional[set[str]]:
    """Submitted option ids that exist on the question; unknown ids are dropped."""
    sel = _selection(ans, allow_scalar)
    if sel is None:
        return None
    return {s.strip() for s in sel if s.strip() in known}


def score_mcq(q: McqQuestion, ans: Any) -> Result:
    """Full marks iff the selected options are exactly the single correct one."""
    chosen = _chosen(ans, q.option_ids())
    if not chosen:
        return NO_CREDIT
    if chosen == set(q.correct_answer):
        return float(q.marks), True
    return NO_CREDIT


def score_multiple_choice(q: MultipleChoiceQuestion, ans: Any) -> Result:
    """Score a multi-select answer.

    An exact match earns full marks. Otherwise, with partial credit enabled,
    each correct pick earns marks/|correct| and each wrong pick takes the same
    amount away, floored at 0 and rounded to 2 decimals.
    """
    chosen = _chosen(ans, q.option_ids(), allow_scalar=False)
    if not chosen:
        return NO_CREDIT
    correct = set(q.correct_answer)
    if chosen == correct:
        return float(q.marks), True
    if not q.partial_credit:
        return NO_CREDIT
    hits = len(chosen & correct)
    wrong = len(chosen - correct)
    score = max(0.0, q.marks * (hits - wrong) / len(correct))
    return round(score, 2), False


def score_true_false(q: TrueFalseQuestion, ans: Any) -> Result:
    """Exact string match against the stored "true"/"false" answer."""
    if isinstance(ans, bool):
        ans = "true" if ans else "false"
    sel = _selection(ans)
    if not sel or len(sel) != 1:
        return NO_CREDIT
    if sel[0] == q.correct_answer[0]:
        return float(q.marks), True
    return NO_CREDIT


def score_short_answer(q: ShortAnswerQuestion, ans: Any) -> Result:
    """Trimmed comparison against each acceptable answer, case-insensitive unless `case_sensitive`."""
    if not isinstance(ans, str):
        return NO_CREDIT
    cand = ans.strip()
    if not cand:
        return NO_CREDIT
    accepted = [a.strip() for a in q.correct_answer]
    if not q.case_sensitive:
        cand = cand.casefold()
        accepted = [a.casefold() for a in accepted]
    if cand in accepted:
        return float(q.marks), True
    return NO_CREDIT


def evaluate(q: Question, ans: Any) -> Result:
    """Return `(score, is_correct)` for one submitted answer to `q`."""
    if q.type == "mcq":
        return score_mcq(q, ans)
    elif q.type == "multiple_choice":
        return score_multiple_choice(q, ans)
    elif q.type == "true_false":
        return score_true_false(q, ans)
    elif q.type == "short_answer":
        return score_short_answer(q, ans)
    raise ValueError(f"unsupported question type: {q.type}")


def aggregate(results: Iterable[Tuple[float, float]]) -> AttemptTotals:
    """Sum `(marks, score)` pairs into an `AttemptTotals` (percentage in [0, 100], 2dp)."""
    total_marks = 0.0
    total_score = 0.0
    for marks, score in results:
        total_marks += marks
        total_score += score
    percentage = (total_score / total_marks) * 100.0 if total_marks > 0 else 0.0
    return AttemptTotals(
        total_score=round(total_score, 2),
        total_marks=round(total_marks, 2),
        percentage=round(percentage, 2),
    )


def score_attempt(questions: List[Question], answers: Mapping[int, Any]) -> Tuple[List[AnswerResult], AttemptTotals]:
    """Evaluate every question against `answers` (keyed by question id) and aggregate.

    Unanswered questions count as empty submissions; answers for ids that are
    not among `questions` are ignored.
    """
    results: List[AnswerResult] = []
    for q in questions:
        a = answers.get(q.id)
        score, ok = evaluate(q, a)
        results.append(AnswerResult(question_id=q.id, answer=a, marks=q.marks, score=score, is_correct=ok))
    totals = aggregate((r.marks, r.score) for r in results)
    return results, totals
