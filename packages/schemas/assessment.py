"""Assessment schemas for quizzes, questions, attempts, scoring and reports."""

from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

QuestionType = Literal["mcq", "multiple_choice", "true_false", "short_answer"]
QuizStatus = Literal["draft", "active", "archived"]
AttemptStatus = Literal["started", "submitted"]

TRUE_FALSE_OPTIONS = (("true", "True"), ("false", "False"))


class Option(BaseModel):
    """A selectable option of a choice question."""
    id: str = Field(..., min_length=1, max_length=10)
    text: str = Field(..., min_length=1, max_length=500)


def _clean_options(value: Any) -> Any:
    """Drop options with blank text and label id-less options A, B, C... by position."""
    if not isinstance(value, list):
        return value
    cleaned = []
    for opt in value:
        if isinstance(opt, Option):
            opt = opt.model_dump()
        if not isinstance(opt, dict):
            cleaned.append(opt)
            continue
        text = opt.get("text")
        if not isinstance(text, str) or not text.strip():
            continue
        oid = opt.get("id")
        if oid is None or (isinstance(oid, str) and not oid.strip()):
            oid = chr(65 + len(cleaned))
        cleaned.append({"id": oid.strip() if isinstance(oid, str) else oid, "text": text.strip()})
    return cleaned


def _utc(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _clean_answers(value: Any) -> Any:
    """Strip correct answers and drop the blank ones."""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return value
    out = []
    for item in value:
        if isinstance(item, str):
            item = item.strip()
            if not item:
                continue
        out.append(item)
    return out


class _QuestionBase(BaseModel):
    """Fields shared by every question type."""
    id: Optional[int] = None
    text: str = Field(..., min_length=1, max_length=2000)
    explanation: Optional[str] = Field(default=None, max_length=1000)
    marks: float = Field(..., ge=0.1, le=100)
    order: int = 0
    is_required: bool = False
    case_sensitive: bool = False
    partial_credit: bool = False

    @field_validator("explanation", mode="before")
    @classmethod
    def _blank_explanation(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("correct_answer", mode="before", check_fields=False)
    @classmethod
    def _strip_answers(cls, v: Any) -> Any:
        return _clean_answers(v)

    @model_validator(mode="after")
    def _unique_answers(self):
        answers = getattr(self, "correct_answer", [])
        if len(set(answers)) != len(answers):
            raise ValueError("Duplicate correct answers are not allowed.")
        return self


class _ChoiceQuestion(_QuestionBase):
    """Question answered by picking option ids from teacher-authored options."""
    options: List[Option] = Field(..., min_length=2, max_length=6)
    correct_answer: List[str] = Field(..., min_length=1)

    @field_validator("options", mode="before")
    @classmethod
    def _tidy_options(cls, v: Any) -> Any:
        return _clean_options(v)

    @model_validator(mode="after")
    def _answers_are_options(self):
        ids = [o.id for o in self.options]
        if len(ids) != len(set(ids)):
            raise ValueError("Option IDs must be unique.")
        unknown = [a for a in self.correct_answer if a not in ids]
        if unknown:
            raise ValueError(f"Correct answer '{unknown[0]}' does not match any option.")
        return self

    def option_ids(self) -> set[str]:
        return {o.id for o in self.options}


class McqQuestion(_ChoiceQuestion):
    """Single-select choice question: exactly one correct option."""
    type: Literal["mcq"] = "mcq"
    correct_answer: List[str] = Field(..., min_length=1, max_length=1)


class MultipleChoiceQuestion(_ChoiceQuestion):
    """Multi-select choice question: at least one, never every option, is correct."""
    type: Literal["multiple_choice"] = "multiple_choice"

    @model_validator(mode="after")
    def _not_all_correct(self):
        if len(self.correct_answer) >= len(self.options):
            raise ValueError("Multiple choice questions cannot have all options as correct answers.")
        return self


class TrueFalseQuestion(_QuestionBase):
    """True/false question with the fixed options `true` and `false`."""
    type: Literal["true_false"] = "true_false"
    options: List[Option] = Field(default_factory=lambda: [Option(id=i, text=t) for i, t in TRUE_FALSE_OPTIONS])
    correct_answer: List[Literal["true", "false"]] = Field(..., min_length=1, max_length=1)

    @field_validator("options", mode="before")
    @classmethod
    def _fixed_options(cls, v: Any) -> Any:
        return [{"id": i, "text": t} for i, t in TRUE_FALSE_OPTIONS]

    @field_validator("correct_answer", mode="before")
    @classmethod
    def _bool_answer(cls, v: Any) -> Any:
        if isinstance(v, bool):
            v = [v]
        if isinstance(v, list):
            v = ["true" if a is True else "false" if a is False else a for a in v]
        return _clean_answers(v)

    def option_ids(self) -> set[str]:
        return {i for i, _ in TRUE_FALSE_OPTIONS}


class ShortAnswerQuestion(_QuestionBase):
    """Free-text question graded against up to five acceptable answers."""
    type: Literal["short_answer"] = "short_answer"
    correct_answer: List[Annotated[str, Field(max_length=500)]] = Field(..., min_length=1, max_length=5)


AnyQuestion = Union[McqQuestion, MultipleChoiceQuestion, TrueFalseQuestion, ShortAnswerQuestion]
Question = Annotated[AnyQuestion, Field(discriminator="type")]


class Evaluation(BaseModel):
    """Outcome of evaluating one submitted answer."""
    question_id: Optional[int] = None
    marks: float
    score: float
    is_correct: bool


class EvaluationRequest(BaseModel):
    """Inline question plus a raw submitted answer (any JSON value)."""
    question: Question
    answer: Any = None


class MarkedScore(BaseModel):
    """A (marks, score) pair fed to the attempt aggregator."""
    marks: float = Field(..., ge=0)
    score: float = Field(..., ge=0)


class AggregateRequest(BaseModel):
    results: List[MarkedScore] = []


class AttemptTotals(BaseModel):
    """Aggregated score of an attempt."""
    total_score: float
    total_marks: float
    percentage: float


class QuizBase(BaseModel):
    """Teacher-editable quiz settings."""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    instructions: Optional[str] = Field(default=None, max_length=2000)
    batch_id: Optional[str] = None
    pass_marks: Optional[float] = Field(default=None, ge=0)
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=480)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    max_attempts: Optional[int] = Field(default=None, ge=1, le=10)
    shuffle_questions: bool = False
    shuffle_options: bool = False
    show_results_immediately: bool = True
    allow_review: bool = True

    @model_validator(mode="after")
    def _window_order(self):
        if self.start_time and self.end_time and _utc(self.end_time) <= _utc(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class QuizCreate(QuizBase):
    """Payload for creating a quiz; quizzes always start as drafts."""


class QuizUpdate(BaseModel):
    """Partial update of quiz settings; unset fields are left untouched.

    Nullable settings may be cleared with an explicit null; `title` and the
    boolean flags may be omitted but never set to null.
    """
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    instructions: Optional[str] = Field(default=None, max_length=2000)
    batch_id: Optional[str] = None
    pass_marks: Optional[float] = Field(default=None, ge=0)
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=480)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    max_attempts: Optional[int] = Field(default=None, ge=1, le=10)
    shuffle_questions: Optional[bool] = None
    shuffle_options: Optional[bool] = None
    show_results_immediately: Optional[bool] = None
    allow_review: Optional[bool] = None

    @field_validator(
        "title", "shuffle_questions", "shuffle_options", "show_results_immediately", "allow_review",
        mode="before",
    )
    @classmethod
    def _not_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class QuizSummary(BaseModel):
    """One row of a teacher's quiz listing."""
    id: int
    title: str
    status: QuizStatus
    batch_id: Optional[str] = None
    question_count: int = 0
    total_marks: float = 0.0
    attempt_count: int = 0
    completed_attempts: int = 0
    average_score: Optional[float] = None
    created_at: Optional[datetime] = None


class StudentQuiz(BaseModel):
    """A quiz offered to a student, with the student's attempt usage."""
    id: int
    title: str
    description: Optional[str] = None
    batch_id: Optional[str] = None
    duration_minutes: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    max_attempts: Optional[int] = None
    attempts_used: int = 0
    is_available: bool = False


class QuestionPosition(BaseModel):
    id: int
    order: int = Field(..., ge=1)


class QuestionReorder(BaseModel):
    """New positions for some or all of a quiz's questions."""
    questions: List[QuestionPosition] = Field(..., min_length=1)


class Quiz(QuizBase):
    """A persisted quiz with its questions in authoring order."""
    id: int
    teacher_id: str
    status: QuizStatus = "draft"
    total_marks: float = 0.0
    questions: List[Question] = []


class DisplayQuestion(BaseModel):
    """Question as shown to a student: no correct answers, no explanation."""
    id: int
    type: QuestionType
    text: str
    marks: float
    is_required: bool = False
    options: Optional[List[Option]] = None


class AttemptSession(BaseModel):
    """Returned when a student starts (or resumes) an attempt."""
    attempt_id: int
    quiz_id: int
    started_at: datetime
    duration_minutes: Optional[int] = None
    instructions: Optional[str] = None
    questions: List[DisplayQuestion]


class Submission(BaseModel):
    """A student's answers keyed by question id; values are raw JSON."""
    answers: Dict[int, Any] = {}


class AnswerResult(BaseModel):
    question_id: int
    answer: Any = None
    marks: float
    score: float
    is_correct: bool


class AttemptResult(BaseModel):
    """An attempt as returned to API clients.

    Score fields are None for students while results are withheld, and
    `answers` is None unless review is allowed.
    """
    id: int
    quiz_id: int
    student_id: str
    status: AttemptStatus
    started_at: datetime
    submitted_at: Optional[datetime] = None
    time_taken: Optional[int] = None
    total_score: Optional[float] = None
    max_score: Optional[float] = None
    percentage: Optional[float] = None
    passed: Optional[bool] = None
    answers: Optional[List[AnswerResult]] = None


DifficultyLevel = Literal["Easy", "Medium", "Hard"]


class QuestionStats(BaseModel):
    question_id: int
    attempts: int
    correct_attempts: int
    correct_percentage: float
    difficulty_level: DifficultyLevel


class QuizReport(BaseModel):
    """Score summary of a quiz over its submitted attempts."""
    quiz_id: int
    total_attempts: int
    completed_attempts: int
    average_score: float
    highest_score: float
    lowest_score: float
    pass_rate: float
    questions: List[QuestionStats] = []


class StudentProgress(BaseModel):
    student_id: str
    completed_attempts: int
    average_score: float
    highest_score: float
    lowest_score: float
