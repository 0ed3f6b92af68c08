# services/assessment/routes.py
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Annotated, List, Optional
from packages.common.auth import ROLE_ADMIN, ROLE_STUDENT, ROLE_TEACHER, User, get_current_user
from packages.common.rbac import require_any_role, require_roles
from packages.schemas import assessment as schemas
from . import attempts, authoring, reports
from .repo import get_session
from .scorer import aggregate, evaluate

router = APIRouter()

QuestionBody = Annotated[schemas.AnyQuestion, Body(discriminator="type")]
staff = require_any_role(ROLE_TEACHER, ROLE_ADMIN)


@router.post("/assessment/evaluate", response_model=schemas.Evaluation, tags=["scoring"])
def evaluate_answer(req: schemas.EvaluationRequest, user: User = Depends(get_current_user)) -> schemas.Evaluation:
    """Score one raw answer against an inline question."""
    score, ok = evaluate(req.question, req.answer)
    return schemas.Evaluation(question_id=req.question.id, marks=req.question.marks, score=score, is_correct=ok)


@router.post("/assessment/aggregate", response_model=schemas.AttemptTotals, tags=["scoring"])
def aggregate_scores(req: schemas.AggregateRequest, user: User = Depends(get_current_user)) -> schemas.AttemptTotals:
    """Total score, total marks and percentage of `(marks, score)` pairs."""
    return aggregate((r.marks, r.score) for r in req.results)


@router.post("/quizzes", response_model=schemas.Quiz, status_code=status.HTTP_201_CREATED, tags=["quizzes"])
async def create_quiz(
    data: schemas.QuizCreate,
    user: User = Depends(require_roles(ROLE_TEACHER)),
    session: AsyncSession = Depends(get_session),
) -> schemas.Quiz:
    return await authoring.create_quiz(session, user, data)


@router.get("/quizzes", response_model=List[schemas.QuizSummary], tags=["quizzes"])
async def list_quizzes(
    quiz_status: Optional[schemas.QuizStatus] = Query(default=None, alias="status"),
    batch_id: Optional[str] = None,
    search: Optional[str] = None,
    user: User = Depends(staff),
    session: AsyncSession = Depends(get_session),
) -> List[schemas.QuizSummary]:
    return await authoring.list_quizzes(session, user, status=quiz_status, batch_id=batch_id, search=search)


@router.get("/quizzes/{quiz_id}", response_model=schemas.Quiz, tags=["quizzes"])
async def read_quiz(quiz_id: int, user: User = Depends(staff), session: AsyncSession = Depends(get_session)) -> schemas.Quiz:
    quiz = await authoring.load_owned_quiz(session, quiz_id, user)
    return await authoring.quiz_detail(session, quiz)


@router.patch("/quizzes/{quiz_id}", response_model=schemas.Quiz, tags=["quizzes"])
async def update_quiz(
    quiz_id: int,
    changes: schemas.QuizUpdate,
    user: User = Depends(staff),
    session: AsyncSession = Depends(get_session),
) -> schemas.Quiz:
    quiz = await authoring.load_owned_quiz(session, quiz_id, user)
    return await authoring.update_quiz(session, quiz, changes)


@router.post("/quizzes/{quiz_id}/activate", response_model=schemas.Quiz, tags=["quizzes"])
async def activate_quiz(quiz_id: int, user: User = Depends(staff), session: AsyncSession = Depends(get_session)) -> schemas.Quiz:
    quiz = await authoring.load_owned_quiz(session, quiz_id, user)
    return await authoring.activate_quiz(session, user, quiz)


@router.post("/quizzes/{quiz_id}/archive", response_model=schemas.Quiz, tags=["quizzes"])
async def archive_quiz(quiz_id: int, user: User = Depends(staff), session: AsyncSession = Depends(get_session)) -> schemas.Quiz:
    quiz = await authoring.load_owned_quiz(session, quiz_id, user)
    return await authoring.archive_quiz(session, user, quiz)


@router.delete("/quizzes/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["quizzes"])
async def delete_quiz(quiz_id: int, user: User = Depends(staff), session: AsyncSession = Depends(get_session)) -> Response:
    quiz = await authoring.load_owned_quiz(session, quiz_id, user)
    await authoring.delete_quiz(session, user, quiz)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/quizzes/{quiz_id}/duplicate",
    response_model=schemas.Quiz,
    status_code=status.HTTP_201_CREATED,
    tags=["quizzes"],
)
async def duplicate_quiz(quiz_id: int, user: User = Depends(staff), session: AsyncSession = Depends(get_session)) -> schemas.Quiz:
    quiz = await authoring.load_owned_quiz(session, quiz_id, user)
    return await authoring.duplicate_quiz(session, user, quiz)


@router.get("/quizzes/{quiz_id}/attempts", response_model=List[schemas.AttemptResult], tags=["attempts"])
async def list_quiz_attempts(
    quiz_id: int,
    user: User = Depends(staff),
    session: AsyncSession = Depends(get_session),
) -> List[schemas.AttemptResult]:
    quiz = await authoring.load_owned_quiz(session, quiz_id, user)
    return await attempts.list_quiz_attempts(session, quiz, user)


@router.post(
    "/quizzes/{quiz_id}/questions",
    response_model=schemas.AnyQuestion,
    status_code=status.HTTP_201_CREATED,
    tags=["questions"],
)
async def add_question(
    quiz_id: int,
    question: QuestionBody,
    user: User = Depends(staff),
    session: AsyncSession = Depends(get_session),
) -> schemas.AnyQuestion:
    quiz = await authoring.load_owned_quiz(session, quiz_id, user)
    return await authoring.add_question(session, quiz, question)


@router.post("/quizzes/{quiz_id}/questions/reorder", response_model=schemas.Quiz, tags=["questions"])
async def reorder_questions(
    quiz_id: int,
    body: schemas.QuestionReorder,
    user: User = Depends(staff),
    session: AsyncSession = Depends(get_session),
) -> schemas.Quiz:
    quiz = await authoring.load_owned_quiz(session, quiz_id, user)
    return await authoring.reorder_questions(session, quiz, body.questions)


@router.post(
    "/quizzes/{quiz_id}/questions/{question_id}/duplicate",
    response_model=schemas.AnyQuestion,
    status_code=status.HTTP_201_CREATED,
    tags=["questions"],
)
async def duplicate_question(
    quiz_id: int,
    question_id: int,
    user: User = Depends(staff),
    session: AsyncSession = Depends(get_session),
) -> schemas.AnyQuestion:
    quiz = await authoring.load_owned_quiz(session, quiz_id, user)
    return await authoring.duplicate_question(session, quiz, question_id)


@router.put("/quizzes/{quiz_id}/questions/{question_id}", response_model=schemas.AnyQuestion, tags=["questions"])
async def replace_question(
    quiz_id: int,
    question_id: int,
    question: QuestionBody,
    user: User = Depends(staff),
    session: AsyncSession = Depends(get_session),
) -> schemas.AnyQuestion:
    quiz = await authoring.load_owned_quiz(session, quiz_id, user)
    return await authoring.replace_question(session, quiz, question_id, question)


@router.delete("/quizzes/{quiz_id}/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["questions"])
async def delete_question(
    quiz_id: int,
    question_id: int,
    user: User = Depends(staff),
    session: AsyncSession = Depends(get_session),
) -> Response:
    quiz = await authoring.load_owned_quiz(session, quiz_id, user)
    await authoring.delete_question(session, quiz, question_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/quizzes/{quiz_id}/attempts",
    response_model=schemas.AttemptSession,
    status_code=status.HTTP_201_CREATED,
    tags=["attempts"],
)
async def start_attempt(
    quiz_id: int,
    user: User = Depends(require_roles(ROLE_STUDENT)),
    session: AsyncSession = Depends(get_session),
) -> schemas.AttemptSession:
    return await attempts.start_attempt(session, quiz_id, user)


@router.post("/attempts/{attempt_id}/submit", response_model=schemas.AttemptResult, tags=["attempts"])
async def submit_attempt(
    attempt_id: int,
    submission: schemas.Submission,
    user: User = Depends(require_roles(ROLE_STUDENT)),
    session: AsyncSession = Depends(get_session),
) -> schemas.AttemptResult:
    return await attempts.submit_attempt(session, attempt_id, user, submission.answers)


@router.get("/attempts/{attempt_id}", response_model=schemas.AttemptResult, tags=["attempts"])
async def read_attempt(
    attempt_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> schemas.AttemptResult:
    return await attempts.get_attempt_result(session, attempt_id, user)


@router.get("/students/me/quizzes", response_model=List[schemas.StudentQuiz], tags=["attempts"])
async def my_quizzes(
    batch_id: Optional[str] = None,
    user: User = Depends(require_roles(ROLE_STUDENT)),
    session: AsyncSession = Depends(get_session),
) -> List[schemas.StudentQuiz]:
    return await attempts.available_quizzes(session, user, batch_id=batch_id)


@router.get("/students/me/results", response_model=List[schemas.AttemptResult], tags=["attempts"])
async def my_results(
    user: User = Depends(require_roles(ROLE_STUDENT)),
    session: AsyncSession = Depends(get_session),
) -> List[schemas.AttemptResult]:
    return await attempts.student_results(session, user)


@router.get("/quizzes/{quiz_id}/report", response_model=schemas.QuizReport, tags=["reports"])
async def quiz_report(quiz_id: int, user: User = Depends(staff), session: AsyncSession = Depends(get_session)) -> schemas.QuizReport:
    quiz = await authoring.load_owned_quiz(session, quiz_id, user)
    return await reports.load_quiz_report(session, quiz)


@router.get("/students/{student_id}/progress", response_model=schemas.StudentProgress, tags=["reports"])
async def student_progress(
    student_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> schemas.StudentProgress:
    if user.sub != student_id and not (user.has_role(ROLE_TEACHER) or user.has_role(ROLE_ADMIN)):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "not allowed to view this student")
    return await reports.load_student_progress(session, student_id)
