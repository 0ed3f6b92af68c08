"""Quiz and attempt lifecycle rules.

Pure helpers shared by the authoring and attempt flows:
- is_available: active quiz inside its optional start/end window.
- can_edit: questions editable while draft, or active with no attempts.
- has_passed: pass marks when set, otherwise a percentage threshold.
- time_taken: whole seconds between start and submission.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=timezone.utc)


def is_available(status: str, start_time: Optional[datetime], end_time: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """Return True when the quiz is active and `now` lies within its window."""
    if status != "active":
        return False
    now = as_utc(now) or utcnow()
    start, end = as_utc(start_time), as_utc(end_time)
    if start and now < start:
        return False
    if end and now > end:
        return False
    return True


def can_edit(status: str, attempt_count: int) -> bool:
    return status == "draft" or (status == "active" and attempt_count == 0)


def has_passed(total_score: float, percentage: float, pass_marks: Optional[float], pass_percentage: float) -> bool:
    """Decide pass/fail of a submitted attempt.

    Args:
        total_score: Marks awarded.
        percentage: Score as percent of the quiz's total marks.
        pass_marks: Quiz pass marks, if the teacher set any.
        pass_percentage: Fallback threshold in percent.
    """
    if pass_marks is not None:
        return total_score >= pass_marks
    return percentage >= pass_percentage


def time_taken(started_at: Optional[datetime], submitted_at: Optional[datetime]) -> Optional[int]:
    if not started_at or not submitted_at:
        return None
    return int((as_utc(submitted_at) - as_utc(started_at)).total_seconds())
