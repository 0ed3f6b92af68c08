"""Report builders for quizzes, questions and students.

The builders are pure; `load_quiz_report` and `load_student_progress` fetch
the outcomes from the repository and hand them over.

- difficulty_level: Easy (>= 80% correct), Medium (>= 60%), else Hard.
- question_stats: attempts/correct counts and difficulty for one question.
- quiz_report: score summary and pass rate over submitted attempts.
- student_progress: score summary over a student's submitted attempts.
"""

from collections import defaultdict
from sqlalchemy.ext.asyncio import AsyncSession
from packages.schemas.assessment import QuestionStats, QuizReport, StudentProgress
from . import repo
from .models import Quiz
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple


def difficulty_level(correct_percentage: float) -> str:
    if correct_percentage >= 80:
        return "Easy"
    if correct_percentage >= 60:
        return "Medium"
    return "Hard"


def question_stats(question_id: int, outcomes: Sequence[bool]) -> QuestionStats:
    """Summarize correctness outcomes of every recorded answer to a question."""
    total = len(outcomes)
    correct = sum(1 for o in outcomes if o)
    pct = (correct / total) * 100.0 if total else 0.0
    return QuestionStats(
        question_id=question_id,
        attempts=total,
        correct_attempts=correct,
        correct_percentage=round(pct, 2),
        difficulty_level=difficulty_level(pct),
    )


def _summary(percentages: Sequence[float]) -> Tuple[float, float, float]:
    if not percentages:
        return 0.0, 0.0, 0.0
    avg = sum(percentages) / len(percentages)
    return round(avg, 2), max(percentages), min(percentages)


def quiz_report(
    quiz_id: int,
    total_attempts: int,
    submitted: Sequence[Tuple[float, bool]],
    question_outcomes: Mapping[int, Sequence[bool]],
) -> QuizReport:
    """Build a `QuizReport`.

    Args:
        quiz_id: The quiz being reported on.
        total_attempts: All attempts, open ones included.
        submitted: `(percentage, passed)` for every submitted attempt.
        question_outcomes: Question id -> correctness of each recorded answer,
            in the order questions should be listed.
    """
    avg, high, low = _summary([p for p, _ in submitted])
    passed = sum(1 for _, ok in submitted if ok)
    pass_rate = (passed / len(submitted)) * 100.0 if submitted else 0.0
    return QuizReport(
        quiz_id=quiz_id,
        total_attempts=total_attempts,
        completed_attempts=len(submitted),
        average_score=avg,
        highest_score=high,
        lowest_score=low,
        pass_rate=round(pass_rate, 2),
        questions=[question_stats(qid, outs) for qid, outs in question_outcomes.items()],
    )


def student_progress(student_id: str, percentages: Iterable[float]) -> StudentProgress:
    pcts: List[float] = list(percentages)
    avg, high, low = _summary(pcts)
    return StudentProgress(
        student_id=student_id,
        completed_attempts=len(pcts),
        average_score=avg,
        highest_score=high,
        lowest_score=low,
    )


async def load_quiz_report(session: AsyncSession, quiz: Quiz) -> QuizReport:
    total = await repo.count_attempts(session, quiz.id)
    submitted = await repo.list_submitted_attempts(session, quiz_id=quiz.id)
    by_question: Dict[int, List[bool]] = defaultdict(list)
    for a in await repo.list_quiz_answers(session, quiz.id):
        by_question[a.question_id].append(a.is_correct)
    outcomes = {q.id: by_question.get(q.id, []) for q in await repo.list_questions(session, quiz.id)}
    return quiz_report(
        quiz.id,
        total,
        [(a.percentage or 0.0, bool(a.passed)) for a in submitted],
        outcomes,
    )


async def load_student_progress(session: AsyncSession, student_id: str) -> StudentProgress:
    submitted = await repo.list_submitted_attempts(session, student_id=student_id)
    return student_progress(student_id, [a.percentage or 0.0 for a in submitted])
