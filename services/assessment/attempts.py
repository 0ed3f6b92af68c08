"""Attempt lifecycle: start, submit, and read back results.

An attempt is created when a student starts an available quiz and closed when
they submit; a closed attempt is never graded or modified again.
"""

import logging
import random
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, List, Mapping, Optional
from packages.common.auth import ROLE_ADMIN, User
from packages.common.config import get_settings
from packages.common.tracing import activity_event
from packages.schemas import assessment as schemas
from . import metrics, repo
from .errors import AttemptClosed, AttemptLimitReached, AttemptNotFound, Forbidden, QuizNotFound, QuizUnavailable
from .lifecycle import has_passed, is_available, time_taken, utcnow
from .models import Quiz, QuizAttempt
from .randomizer import order_questions, prepare_for_display
from .scorer import score_attempt

log = logging.getLogger(__name__)


async def _questions_by_id(session: AsyncSession, quiz_id: int) -> Dict[int, schemas.Question]:
    rows = await repo.list_questions(session, quiz_id)
    return {r.id: repo.question_from_row(r) for r in rows}


def _session_payload(quiz: Quiz, attempt: QuizAttempt, questions: Mapping[int, schemas.Question]) -> schemas.AttemptSession:
    """Display payload of an attempt; option order is seeded by the attempt id so it survives resumes."""
    ordered = [questions[qid] for qid in attempt.question_order if qid in questions]
    return schemas.AttemptSession(
        attempt_id=attempt.id,
        quiz_id=quiz.id,
        started_at=attempt.started_at,
        duration_minutes=quiz.duration_minutes,
        instructions=quiz.instructions,
        questions=prepare_for_display(ordered, quiz.shuffle_options, random.Random(attempt.id)),
    )


async def start_attempt(
    session: AsyncSession,
    quiz_id: int,
    student: User,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> schemas.AttemptSession:
    """Open an attempt for `student`, or resume the one already open.

    Raises:
        QuizNotFound: unknown quiz.
        QuizUnavailable: quiz not active or outside its window.
        AttemptLimitReached: student used up `max_attempts` submissions.
    """
    now = now or utcnow()
    quiz = await repo.get_quiz(session, quiz_id)
    if quiz is None:
        raise QuizNotFound("quiz not found")
    if not is_available(quiz.status, quiz.start_time, quiz.end_time, now):
        raise QuizUnavailable("quiz is not available")

    questions = await _questions_by_id(session, quiz.id)
    attempt = await repo.get_open_attempt(session, quiz.id, student.sub)
    if attempt is not None:
        metrics.mark_started(resumed=True)
        return _session_payload(quiz, attempt, questions)

    if quiz.max_attempts:
        used = await repo.count_attempts(session, quiz.id, student.sub, submitted_only=True)
        if used >= quiz.max_attempts:
            raise AttemptLimitReached(f"maximum of {quiz.max_attempts} attempts reached")

    order = [q.id for q in order_questions(list(questions.values()), quiz.shuffle_questions, rng)]
    attempt = await repo.create_attempt(session, quiz.id, student.sub, order, now)
    metrics.mark_started(resumed=False)
    activity_event(student.sub, "started", f"quiz:{quiz.id}", attempt_id=attempt.id)
    return _session_payload(quiz, attempt, questions)


async def _load_attempt(session: AsyncSession, attempt_id: int, for_update: bool = False) -> QuizAttempt:
    attempt = await repo.get_attempt(session, attempt_id, for_update=for_update)
    if attempt is None:
        raise AttemptNotFound("attempt not found")
    return attempt


async def submit_attempt(
    session: AsyncSession,
    attempt_id: int,
    student: User,
    answers: Mapping[int, Any],
    now: Optional[datetime] = None,
) -> schemas.AttemptResult:
    """Grade and close an open attempt.

    Every question in the attempt's order is graded; missing answers score 0
    and answers to questions outside the attempt are ignored.

    Raises:
        AttemptNotFound: unknown attempt.
        Forbidden: attempt belongs to another student.
        AttemptClosed: attempt was already submitted.
    """
    attempt = await _load_attempt(session, attempt_id, for_update=True)
    if attempt.student_id != student.sub:
        raise Forbidden("not your attempt")
    if attempt.status == "submitted":
        raise AttemptClosed("attempt already submitted")
    quiz = await repo.get_quiz(session, attempt.quiz_id)
    if quiz is None:
        raise QuizNotFound("quiz not found")

    questions = await _questions_by_id(session, quiz.id)
    ordered = [questions[qid] for qid in attempt.question_order if qid in questions]
    results, totals = score_attempt(ordered, answers)
    passed = has_passed(totals.total_score, totals.percentage, quiz.pass_marks, get_settings().PASS_PERCENTAGE)
    attempt = await repo.save_submission(session, attempt, results, totals, passed, now or utcnow())
    metrics.mark_submitted(totals.percentage, passed)

    log.info(
        f"attempt submitted score={totals.total_score}/{totals.total_marks} ({totals.percentage}%)",
        extra={"attempt_id": attempt.id, "quiz_id": quiz.id, "student_id": student.sub},
    )
    activity_event(student.sub, "submitted", f"quiz:{quiz.id}", attempt_id=attempt.id, percentage=totals.percentage)
    return to_result(attempt, results, quiz, viewer=student)


def to_result(
    attempt: QuizAttempt,
    answers: Optional[List[schemas.AnswerResult]],
    quiz: Quiz,
    viewer: User,
) -> schemas.AttemptResult:
    """Render an attempt for `viewer`.

    The owning student sees scores only when the quiz shows results
    immediately, and per-question answers only when review is also allowed.
    Teachers and admins see everything.
    """
    full = viewer.sub != attempt.student_id
    show_scores = full or (attempt.status == "submitted" and quiz.show_results_immediately)
    show_answers = show_scores and (full or quiz.allow_review)
    return schemas.AttemptResult(
        id=attempt.id,
        quiz_id=attempt.quiz_id,
        student_id=attempt.student_id,
        status=attempt.status,
        started_at=attempt.started_at,
        submitted_at=attempt.submitted_at,
        time_taken=time_taken(attempt.started_at, attempt.submitted_at),
        total_score=attempt.total_score if show_scores else None,
        max_score=attempt.max_score if show_scores else None,
        percentage=attempt.percentage if show_scores else None,
        passed=attempt.passed if show_scores else None,
        answers=answers if show_answers and attempt.status == "submitted" else None,
    )


async def get_attempt_result(session: AsyncSession, attempt_id: int, viewer: User) -> schemas.AttemptResult:
    """Return an attempt to its student, the quiz owner, or an admin."""
    attempt = await _load_attempt(session, attempt_id)
    quiz = await repo.get_quiz(session, attempt.quiz_id)
    if quiz is None:
        raise QuizNotFound("quiz not found")
    if viewer.sub not in (attempt.student_id, quiz.teacher_id) and not viewer.has_role(ROLE_ADMIN):
        raise Forbidden("not allowed to view this attempt")
    rows = await repo.list_answers(session, attempt.id)
    questions = await _questions_by_id(session, quiz.id)
    answers = [
        schemas.AnswerResult(
            question_id=r.question_id,
            answer=r.answer,
            marks=questions[r.question_id].marks if r.question_id in questions else 0.0,
            score=r.marks_awarded,
            is_correct=r.is_correct,
        )
        for r in rows
    ]
    return to_result(attempt, answers, quiz, viewer)


def _latest_first(rows: List[QuizAttempt]) -> List[QuizAttempt]:
    return sorted(rows, key=lambda a: (a.submitted_at, a.id), reverse=True)


async def list_quiz_attempts(session: AsyncSession, quiz: Quiz, viewer: User) -> List[schemas.AttemptResult]:
    """Submitted attempts of a quiz, most recently submitted first, without answers."""
    rows = await repo.list_submitted_attempts(session, quiz_id=quiz.id)
    return [to_result(a, None, quiz, viewer) for a in _latest_first(rows)]


async def available_quizzes(
    session: AsyncSession,
    student: User,
    batch_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[schemas.StudentQuiz]:
    """Active quizzes that have not ended, with the student's used attempts."""
    now = now or utcnow()
    out = []
    for quiz in await repo.list_open_quizzes(session, now, batch_id):
        used = await repo.count_attempts(session, quiz.id, student.sub, submitted_only=True)
        open_now = is_available(quiz.status, quiz.start_time, quiz.end_time, now)
        out.append(schemas.StudentQuiz(
            id=quiz.id,
            title=quiz.title,
            description=quiz.description,
            batch_id=quiz.batch_id,
            duration_minutes=quiz.duration_minutes,
            start_time=quiz.start_time,
            end_time=quiz.end_time,
            max_attempts=quiz.max_attempts,
            attempts_used=used,
            is_available=open_now and not (quiz.max_attempts and used >= quiz.max_attempts),
        ))
    return out


async def student_results(session: AsyncSession, student: User) -> List[schemas.AttemptResult]:
    """The student's submitted attempts, most recent first, under each quiz's visibility rules."""
    rows = await repo.list_submitted_attempts(session, student_id=student.sub)
    quizzes: Dict[int, Quiz] = {}
    out = []
    for attempt in _latest_first(rows):
        if attempt.quiz_id not in quizzes:
            quiz = await repo.get_quiz(session, attempt.quiz_id)
            if quiz is None:
                continue
            quizzes[attempt.quiz_id] = quiz
        out.append(to_result(attempt, None, quizzes[attempt.quiz_id], student))
    return out
