"""Domain errors raised by the assessment service and rendered by the app."""


class AssessmentError(Exception):
    """Base class; `status_code` is the HTTP status the app responds with."""
    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class QuizNotFound(AssessmentError):
    status_code = 404


class QuestionNotFound(AssessmentError):
    status_code = 404


class AttemptNotFound(AssessmentError):
    status_code = 404


class Forbidden(AssessmentError):
    status_code = 403


class QuizUnavailable(AssessmentError):
    """Quiz is not active or outside its availability window."""
    status_code = 409


class QuizLocked(AssessmentError):
    """Questions cannot change once students have attempted the quiz."""
    status_code = 409


class AttemptLimitReached(AssessmentError):
    status_code = 409


class AttemptClosed(AssessmentError):
    """The attempt was already submitted."""
    status_code = 409


class InvalidQuizSettings(AssessmentError):
    status_code = 422
