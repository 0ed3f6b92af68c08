"""Question/option ordering for quiz attempts.

Shuffles question order and option order when the quiz asks for it, and turns
authored questions into display payloads that never carry correct answers or
explanations.
"""

import random
from typing import List, Optional, Sequence
from packages.schemas.assessment import DisplayQuestion, Question


def order_questions(questions: Sequence[Question], shuffle: bool, rng: Optional[random.Random] = None) -> List[Question]:
    """Return questions in authoring order, or shuffled when `shuffle` is set."""
    ordered = sorted(questions, key=lambda q: (q.order, q.id or 0))
    if shuffle:
        (rng or random).shuffle(ordered)
    return ordered


def display_question(q: Question, shuffle_options: bool = False, rng: Optional[random.Random] = None) -> DisplayQuestion:
    """Strip answer material from `q`; true/false options keep their fixed order."""
    options = list(getattr(q, "options", None) or []) or None
    if options and shuffle_options and q.type != "true_false":
        (rng or random).shuffle(options)
    return DisplayQuestion(
        id=q.id,
        type=q.type,
        text=q.text,
        marks=q.marks,
        is_required=q.is_required,
        options=options,
    )


def prepare_for_display(questions: Sequence[Question], shuffle_options: bool = False, rng: Optional[random.Random] = None) -> List[DisplayQuestion]:
    return [display_question(q, shuffle_options, rng) for q in questions]
