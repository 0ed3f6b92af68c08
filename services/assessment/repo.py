"""Repository layer for the Assessment service.

Provides async database initialization, a per-request session dependency,
CRUD helpers for quizzes, questions and attempts, and converters from rows to
the pydantic schemas used by the scorer and the API.
"""

from datetime import datetime
from pydantic import TypeAdapter
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy import delete, func, or_, select
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple
from packages.common.config import get_settings
from packages.schemas import assessment as schemas
from .models import Base, Question, Quiz, QuizAnswer, QuizAttempt

s = get_settings()
engine = create_async_engine(s.DATABASE_DSN, echo=False)
Session = async_sessionmaker(engine, expire_on_commit=False)

_question_adapter: TypeAdapter = TypeAdapter(schemas.Question)

_QUIZ_COPY_FIELDS = (
    "batch_id", "description", "instructions", "pass_marks", "duration_minutes", "start_time", "end_time",
    "max_attempts", "shuffle_questions", "shuffle_options", "show_results_immediately", "allow_review",
)
_QUESTION_COPY_FIELDS = (
    "quiz_id", "type", "text", "explanation", "marks", "order", "is_required", "options", "correct_answer",
    "case_sensitive", "partial_credit",
)


async def init_db() -> None:
    """Create database schema if it doesn't exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding one session per request."""
    async with Session() as session:
        yield session


# ----- converters -----

def question_from_row(row: Question) -> schemas.Question:
    """Rebuild the typed question (tagged union) from its row."""
    return _question_adapter.validate_python({
        "id": row.id,
        "type": row.type,
        "text": row.text,
        "explanation": row.explanation,
        "marks": row.marks,
        "order": row.order,
        "is_required": row.is_required,
        "options": row.options,
        "correct_answer": row.correct_answer,
        "case_sensitive": row.case_sensitive,
        "partial_credit": row.partial_credit,
    })


def quiz_from_row(row: Quiz, questions: Sequence[schemas.Question] = ()) -> schemas.Quiz:
    return schemas.Quiz(
        id=row.id,
        teacher_id=row.teacher_id,
        status=row.status,
        title=row.title,
        description=row.description,
        instructions=row.instructions,
        batch_id=row.batch_id,
        pass_marks=row.pass_marks,
        duration_minutes=row.duration_minutes,
        start_time=row.start_time,
        end_time=row.end_time,
        max_attempts=row.max_attempts,
        shuffle_questions=row.shuffle_questions,
        shuffle_options=row.shuffle_options,
        show_results_immediately=row.show_results_immediately,
        allow_review=row.allow_review,
        total_marks=round(sum(q.marks for q in questions), 2),
        questions=list(questions),
    )


def _question_values(q: schemas.Question) -> Dict[str, Any]:
    options = getattr(q, "options", None)
    return {
        "type": q.type,
        "text": q.text,
        "explanation": q.explanation,
        "marks": q.marks,
        "order": q.order,
        "is_required": q.is_required,
        "options": [o.model_dump() for o in options] if options else None,
        "correct_answer": list(q.correct_answer),
        "case_sensitive": q.case_sensitive,
        "partial_credit": q.partial_credit,
    }


# ----- quizzes -----

async def create_quiz(session: AsyncSession, teacher_id: str, data: schemas.QuizCreate) -> Quiz:
    """Insert a new draft quiz owned by `teacher_id` and return the row."""
    quiz = Quiz(teacher_id=teacher_id, status="draft", **data.model_dump())
    session.add(quiz)
    await session.commit()
    await session.refresh(quiz)
    return quiz


async def get_quiz(session: AsyncSession, quiz_id: int) -> Quiz | None:
    res = await session.execute(select(Quiz).where(Quiz.id == quiz_id))
    return res.scalar_one_or_none()


async def update_quiz(session: AsyncSession, quiz: Quiz, changes: Dict[str, Any]) -> Quiz:
    for key, value in changes.items():
        setattr(quiz, key, value)
    await session.commit()
    await session.refresh(quiz)
    return quiz


async def list_quizzes(
    session: AsyncSession,
    teacher_id: Optional[str] = None,
    status: Optional[str] = None,
    batch_id: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Quiz]:
    """Quizzes newest first, filtered by owner, status, batch and title/description text."""
    q = select(Quiz)
    if teacher_id is not None:
        q = q.where(Quiz.teacher_id == teacher_id)
    if status:
        q = q.where(Quiz.status == status)
    if batch_id:
        q = q.where(Quiz.batch_id == batch_id)
    if search:
        pattern = f"%{search}%"
        q = q.where(or_(Quiz.title.ilike(pattern), Quiz.description.ilike(pattern)))
    res = await session.execute(q.order_by(Quiz.created_at.desc(), Quiz.id.desc()))
    return list(res.scalars())


async def question_totals(session: AsyncSession, quiz_ids: Sequence[int]) -> Dict[int, Tuple[int, float]]:
    """Map quiz id -> (question count, total marks)."""
    if not quiz_ids:
        return {}
    res = await session.execute(
        select(Question.quiz_id, func.count(Question.id), func.sum(Question.marks))
        .where(Question.quiz_id.in_(quiz_ids))
        .group_by(Question.quiz_id)
    )
    return {quiz_id: (int(n), float(marks or 0)) for quiz_id, n, marks in res.all()}


async def attempt_totals(session: AsyncSession, quiz_ids: Sequence[int]) -> Dict[int, Tuple[int, int, Optional[float]]]:
    """Map quiz id -> (attempts, submitted attempts, average percentage of submitted)."""
    if not quiz_ids:
        return {}
    res = await session.execute(
        select(
            QuizAttempt.quiz_id,
            func.count(QuizAttempt.id),
            func.count(QuizAttempt.submitted_at),
            func.avg(QuizAttempt.percentage),
        )
        .where(QuizAttempt.quiz_id.in_(quiz_ids))
        .group_by(QuizAttempt.quiz_id)
    )
    return {
        quiz_id: (int(n), int(done), round(float(avg), 2) if avg is not None else None)
        for quiz_id, n, done, avg in res.all()
    }


async def list_open_quizzes(session: AsyncSession, now: datetime, batch_id: Optional[str] = None) -> List[Quiz]:
    """Active quizzes whose end time has not passed."""
    q = select(Quiz).where(Quiz.status == "active", or_(Quiz.end_time.is_(None), Quiz.end_time >= now))
    if batch_id:
        q = q.where(Quiz.batch_id == batch_id)
    res = await session.execute(q.order_by(Quiz.id))
    return list(res.scalars())


async def delete_quiz(session: AsyncSession, quiz: Quiz) -> None:
    """Delete a quiz together with its questions in one commit."""
    await session.execute(delete(Question).where(Question.quiz_id == quiz.id))
    await session.delete(quiz)
    await session.commit()


async def copy_quiz(session: AsyncSession, quiz: Quiz, title: str) -> Quiz:
    """Insert a draft copy of `quiz` and of each of its questions."""
    copy = Quiz(
        teacher_id=quiz.teacher_id,
        status="draft",
        title=title,
        **{key: getattr(quiz, key) for key in _QUIZ_COPY_FIELDS},
    )
    session.add(copy)
    await session.flush()
    for row in await list_questions(session, quiz.id):
        session.add(_copy_question(row, quiz_id=copy.id))
    await session.commit()
    await session.refresh(copy)
    return copy


# ----- questions -----

async def list_questions(session: AsyncSession, quiz_id: int) -> List[Question]:
    """Questions of a quiz in authoring order (order, then id)."""
    res = await session.execute(
        select(Question).where(Question.quiz_id == quiz_id).order_by(Question.order, Question.id)
    )
    return list(res.scalars())


async def get_question(session: AsyncSession, quiz_id: int, question_id: int) -> Question | None:
    res = await session.execute(
        select(Question).where(Question.quiz_id == quiz_id, Question.id == question_id)
    )
    return res.scalar_one_or_none()


async def add_question(session: AsyncSession, quiz_id: int, q: schemas.Question) -> Question:
    row = Question(quiz_id=quiz_id, **_question_values(q))
    session.add(row)
    await session.commit()
    await session.refresh(row)
    return row


async def replace_question(session: AsyncSession, row: Question, q: schemas.Question) -> Question:
    for key, value in _question_values(q).items():
        setattr(row, key, value)
    await session.commit()
    await session.refresh(row)
    return row


async def delete_question(session: AsyncSession, row: Question) -> None:
    await session.delete(row)
    await session.commit()


async def set_question_orders(session: AsyncSession, rows: Sequence[Question], orders: Dict[int, int]) -> None:
    """Apply `orders` (question id -> order) to `rows` in one commit."""
    for row in rows:
        if row.id in orders:
            row.order = orders[row.id]
    await session.commit()


async def copy_question(session: AsyncSession, row: Question, text: str, order: int) -> Question:
    new = _copy_question(row, text=text, order=order)
    session.add(new)
    await session.commit()
    await session.refresh(new)
    return new


def _copy_question(row: Question, **overrides: Any) -> Question:
    values = {key: getattr(row, key) for key in _QUESTION_COPY_FIELDS}
    values.update(overrides)
    return Question(**values)


# ----- attempts -----

async def count_attempts(
    session: AsyncSession,
    quiz_id: int,
    student_id: Optional[str] = None,
    submitted_only: bool = False,
) -> int:
    """Count attempts on a quiz, optionally for one student and/or only submitted ones."""
    q = select(func.count(QuizAttempt.id)).where(QuizAttempt.quiz_id == quiz_id)
    if student_id is not None:
        q = q.where(QuizAttempt.student_id == student_id)
    if submitted_only:
        q = q.where(QuizAttempt.status == "submitted")
    res = await session.execute(q)
    return int(res.scalar_one())


async def get_open_attempt(session: AsyncSession, quiz_id: int, student_id: str) -> QuizAttempt | None:
    res = await session.execute(
        select(QuizAttempt)
        .where(
            QuizAttempt.quiz_id == quiz_id,
            QuizAttempt.student_id == student_id,
            QuizAttempt.status == "started",
        )
        .order_by(QuizAttempt.id.desc())
        .limit(1)
    )
    return res.scalar_one_or_none()


async def create_attempt(
    session: AsyncSession,
    quiz_id: int,
    student_id: str,
    question_order: List[int],
    started_at: datetime,
) -> QuizAttempt:
    attempt = QuizAttempt(
        quiz_id=quiz_id,
        student_id=student_id,
        status="started",
        started_at=started_at,
        question_order=question_order,
    )
    session.add(attempt)
    await session.commit()
    await session.refresh(attempt)
    return attempt


async def get_attempt(session: AsyncSession, attempt_id: int, for_update: bool = False) -> QuizAttempt | None:
    """Fetch an attempt; `for_update` takes a row lock where the backend supports it."""
    q = select(QuizAttempt).where(QuizAttempt.id == attempt_id)
    if for_update:
        q = q.with_for_update()
    res = await session.execute(q)
    return res.scalar_one_or_none()


async def save_submission(
    session: AsyncSession,
    attempt: QuizAttempt,
    results: Sequence[schemas.AnswerResult],
    totals: schemas.AttemptTotals,
    passed: bool,
    submitted_at: datetime,
) -> QuizAttempt:
    """Store graded answers and close the attempt in one commit."""
    for r in results:
        session.add(QuizAnswer(
            attempt_id=attempt.id,
            question_id=r.question_id,
            answer=r.answer,
            is_correct=r.is_correct,
            marks_awarded=r.score,
        ))
    attempt.status = "submitted"
    attempt.submitted_at = submitted_at
    attempt.total_score = totals.total_score
    attempt.max_score = totals.total_marks
    attempt.percentage = totals.percentage
    attempt.passed = passed
    await session.commit()
    await session.refresh(attempt)
    return attempt


async def list_answers(session: AsyncSession, attempt_id: int) -> List[QuizAnswer]:
    res = await session.execute(
        select(QuizAnswer).where(QuizAnswer.attempt_id == attempt_id).order_by(QuizAnswer.id)
    )
    return list(res.scalars())


async def list_submitted_attempts(
    session: AsyncSession,
    quiz_id: Optional[int] = None,
    student_id: Optional[str] = None,
) -> List[QuizAttempt]:
    q = select(QuizAttempt).where(QuizAttempt.status == "submitted")
    if quiz_id is not None:
        q = q.where(QuizAttempt.quiz_id == quiz_id)
    if student_id is not None:
        q = q.where(QuizAttempt.student_id == student_id)
    res = await session.execute(q.order_by(QuizAttempt.id))
    return list(res.scalars())


async def list_quiz_answers(session: AsyncSession, quiz_id: int) -> List[QuizAnswer]:
    """Every graded answer recorded for the quiz's questions."""
    res = await session.execute(
        select(QuizAnswer)
        .join(Question, Question.id == QuizAnswer.question_id)
        .where(Question.quiz_id == quiz_id)
        .order_by(QuizAnswer.id)
    )
    return list(res.scalars())
