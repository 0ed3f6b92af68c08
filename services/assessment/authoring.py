"""Quiz and question authoring flows.

Teachers own their quizzes; admins may act on any quiz. Question edits are
refused once the quiz is locked (see `lifecycle.can_edit`).
"""

import logging
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from packages.common.auth import ROLE_ADMIN, User
from packages.common.tracing import activity_event
from packages.schemas import assessment as schemas
from . import repo
from .errors import Forbidden, InvalidQuizSettings, QuestionNotFound, QuizLocked, QuizNotFound, QuizUnavailable
from .lifecycle import as_utc, can_edit
from .models import Quiz

log = logging.getLogger(__name__)

COPY_SUFFIX = " (Copy)"
QUIZ_TITLE_MAX = 255
QUESTION_TEXT_MAX = 2000


async def load_owned_quiz(session: AsyncSession, quiz_id: int, user: User) -> Quiz:
    """Fetch a quiz the user may manage, or raise 404/403."""
    quiz = await repo.get_quiz(session, quiz_id)
    if quiz is None:
        raise QuizNotFound("quiz not found")
    if quiz.teacher_id != user.sub and not user.has_role(ROLE_ADMIN):
        raise Forbidden("not the owner of this quiz")
    return quiz


async def quiz_detail(session: AsyncSession, quiz: Quiz) -> schemas.Quiz:
    rows = await repo.list_questions(session, quiz.id)
    return repo.quiz_from_row(quiz, [repo.question_from_row(r) for r in rows])


async def create_quiz(session: AsyncSession, user: User, data: schemas.QuizCreate) -> schemas.Quiz:
    quiz = await repo.create_quiz(session, user.sub, data)
    log.info("quiz created", extra={"quiz_id": quiz.id, "actor": user.sub})
    return repo.quiz_from_row(quiz)


async def update_quiz(session: AsyncSession, quiz: Quiz, changes: schemas.QuizUpdate) -> schemas.Quiz:
    """Apply the fields explicitly set in `changes`; the resulting window must stay ordered."""
    values = changes.model_dump(exclude_unset=True)
    start = as_utc(values.get("start_time", quiz.start_time))
    end = as_utc(values.get("end_time", quiz.end_time))
    if start and end and end <= start:
        raise InvalidQuizSettings("end_time must be after start_time")
    quiz = await repo.update_quiz(session, quiz, values)
    return await quiz_detail(session, quiz)


async def activate_quiz(session: AsyncSession, user: User, quiz: Quiz) -> schemas.Quiz:
    """Publish a quiz; archived quizzes stay archived."""
    if quiz.status == "active":
        return await quiz_detail(session, quiz)
    if quiz.status == "archived":
        raise QuizLocked("an archived quiz cannot be activated")
    if not await repo.list_questions(session, quiz.id):
        raise QuizUnavailable("cannot activate a quiz without questions")
    quiz = await repo.update_quiz(session, quiz, {"status": "active"})
    activity_event(user.sub, "activated", f"quiz:{quiz.id}")
    return await quiz_detail(session, quiz)


async def archive_quiz(session: AsyncSession, user: User, quiz: Quiz) -> schemas.Quiz:
    if quiz.status == "archived":
        return await quiz_detail(session, quiz)
    quiz = await repo.update_quiz(session, quiz, {"status": "archived"})
    activity_event(user.sub, "archived", f"quiz:{quiz.id}")
    return await quiz_detail(session, quiz)


async def _ensure_editable(session: AsyncSession, quiz: Quiz) -> None:
    attempts = await repo.count_attempts(session, quiz.id)
    if not can_edit(quiz.status, attempts):
        raise QuizLocked("quiz questions cannot change once it has attempts or is archived")


async def add_question(session: AsyncSession, quiz: Quiz, q: schemas.Question) -> schemas.Question:
    await _ensure_editable(session, quiz)
    row = await repo.add_question(session, quiz.id, q)
    log.info("question added", extra={"quiz_id": quiz.id, "question_id": row.id})
    return repo.question_from_row(row)


async def replace_question(session: AsyncSession, quiz: Quiz, question_id: int, q: schemas.Question) -> schemas.Question:
    await _ensure_editable(session, quiz)
    row = await repo.get_question(session, quiz.id, question_id)
    if row is None:
        raise QuestionNotFound("question not found")
    row = await repo.replace_question(session, row, q)
    return repo.question_from_row(row)


async def delete_question(session: AsyncSession, quiz: Quiz, question_id: int) -> None:
    await _ensure_editable(session, quiz)
    row = await repo.get_question(session, quiz.id, question_id)
    if row is None:
        raise QuestionNotFound("question not found")
    await repo.delete_question(session, row)
    log.info("question deleted", extra={"quiz_id": quiz.id, "question_id": question_id})


def _with_copy_suffix(text: str, limit: int) -> str:
    """Append " (Copy)", trimming `text` so the result fits in `limit` characters."""
    return text[: limit - len(COPY_SUFFIX)] + COPY_SUFFIX


async def list_quizzes(
    session: AsyncSession,
    user: User,
    status: Optional[str] = None,
    batch_id: Optional[str] = None,
    search: Optional[str] = None,
) -> List[schemas.QuizSummary]:
    """Teacher's own quizzes (every quiz for admins) with question and attempt counts."""
    owner = None if user.has_role(ROLE_ADMIN) else user.sub
    rows = await repo.list_quizzes(session, owner, status=status, batch_id=batch_id, search=search)
    ids = [r.id for r in rows]
    questions = await repo.question_totals(session, ids)
    attempts = await repo.attempt_totals(session, ids)
    out = []
    for r in rows:
        count, marks = questions.get(r.id, (0, 0.0))
        started, done, average = attempts.get(r.id, (0, 0, None))
        out.append(schemas.QuizSummary(
            id=r.id,
            title=r.title,
            status=r.status,
            batch_id=r.batch_id,
            question_count=count,
            total_marks=round(marks, 2),
            attempt_count=started,
            completed_attempts=done,
            average_score=average,
            created_at=r.created_at,
        ))
    return out


async def delete_quiz(session: AsyncSession, user: User, quiz: Quiz) -> None:
    if await repo.count_attempts(session, quiz.id):
        raise QuizLocked("cannot delete a quiz with existing attempts")
    quiz_id = quiz.id
    await repo.delete_quiz(session, quiz)
    activity_event(user.sub, "deleted", f"quiz:{quiz_id}")


async def duplicate_quiz(session: AsyncSession, user: User, quiz: Quiz) -> schemas.Quiz:
    """Draft copy of `quiz` and its questions; the copy keeps the original owner."""
    copy = await repo.copy_quiz(session, quiz, _with_copy_suffix(quiz.title, QUIZ_TITLE_MAX))
    activity_event(user.sub, "duplicated", f"quiz:{quiz.id}", copy_id=copy.id)
    return await quiz_detail(session, copy)


async def reorder_questions(session: AsyncSession, quiz: Quiz, positions: List[schemas.QuestionPosition]) -> schemas.Quiz:
    await _ensure_editable(session, quiz)
    rows = await repo.list_questions(session, quiz.id)
    known = {r.id for r in rows}
    for p in positions:
        if p.id not in known:
            raise QuestionNotFound(f"question {p.id} not found in this quiz")
    await repo.set_question_orders(session, rows, {p.id: p.order for p in positions})
    log.info("questions reordered", extra={"quiz_id": quiz.id})
    return await quiz_detail(session, quiz)


async def duplicate_question(session: AsyncSession, quiz: Quiz, question_id: int) -> schemas.Question:
    """Copy a question to the end of the quiz."""
    await _ensure_editable(session, quiz)
    row = await repo.get_question(session, quiz.id, question_id)
    if row is None:
        raise QuestionNotFound("question not found")
    last = max(r.order for r in await repo.list_questions(session, quiz.id))
    new = await repo.copy_question(session, row, _with_copy_suffix(row.text, QUESTION_TEXT_MAX), last + 1)
    log.info("question duplicated", extra={"quiz_id": quiz.id, "question_id": new.id})
    return repo.question_from_row(new)
