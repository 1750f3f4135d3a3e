"""
Exam-taking state machine and weak-point derivation.

    LOADING ──load()──▶ IN_PROGRESS ──next() on last / finish()──▶ FINISHED
       │
       └──fail()──▶ ERROR

Usage
-----
    attempt = ExamAttempt()
    attempt.load(exam)
    attempt.select_option(2)
    attempt.next()
    ...
    weak_points = attempt.weak_points      # once FINISHED
"""
from __future__ import annotations

import enum
import logging
from typing import Dict, List, Mapping, Optional

from app.exceptions import ExamStateError, InvalidRequestError
from app.models.schemas import CriticalitySchema, Exam, Question, WeakPointSchema
from app.utils.helpers import new_id, truncate

logger = logging.getLogger(__name__)

TOPIC_PREFIX = "Concept: "
TOPIC_LENGTH = 30
MISSED_PREFIX = "You missed this question. "


class ExamState(str, enum.Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"
    ERROR = "error"


def derive_weak_points(
    exam: Exam,
    selections: Mapping[str, int],
) -> List[WeakPointSchema]:
    """
    One HIGH weak point per question whose recorded selection differs from the
    correct option, unanswered questions included. Order follows the exam.
    """
    weak_points: List[WeakPointSchema] = []
    for question in exam.questions:
        if selections.get(question.id) == question.correct_option_index:
            continue
        weak_points.append(
            WeakPointSchema(
                id=new_id(),
                topic=TOPIC_PREFIX + truncate(question.question_text, TOPIC_LENGTH, ellipsis="..."),
                description=MISSED_PREFIX + question.explanation,
                criticality=CriticalitySchema.HIGH,
                matched_text_snippet=question.question_text,
            )
        )
    return weak_points


class ExamAttempt:
    """One user's pass through a generated exam."""

    def __init__(self) -> None:
        self.state = ExamState.LOADING
        self.exam: Optional[Exam] = None
        self.current_index = 0
        self.selections: Dict[str, int] = {}
        self.weak_points: List[WeakPointSchema] = []
        self.error: Optional[str] = None
        self.exit_pending = False

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, exam: Exam) -> None:
        self._require(ExamState.LOADING, "load")
        if not exam.questions:
            self.fail("The exam has no questions.")
            return
        self.exam = exam
        self.state = ExamState.IN_PROGRESS

    def fail(self, message: str) -> None:
        """Generation failed; the attempt ends without ever starting."""
        self._require(ExamState.LOADING, "fail")
        self.error = message
        self.state = ExamState.ERROR

    # ------------------------------------------------------------------
    # Answering
    # ------------------------------------------------------------------

    @property
    def current_question(self) -> Question:
        self._require(ExamState.IN_PROGRESS, "read the current question")
        return self.exam.questions[self.current_index]

    @property
    def is_last_question(self) -> bool:
        return self.exam is not None and self.current_index == len(self.exam.questions) - 1

    def select_option(self, option_index: int) -> None:
        """Record (or overwrite) the answer to the current question."""
        question = self.current_question
        if not 0 <= option_index < len(question.options):
            raise InvalidRequestError(
                f"Option {option_index} does not exist for question '{question.id}'."
            )
        self.selections[question.id] = option_index

    def next(self) -> None:
        question = self.current_question
        if question.id not in self.selections:
            raise ExamStateError("Select an option before moving to the next question.")
        if self.is_last_question:
            self.finish()
        else:
            self.current_index += 1

    def record_answers(self, answers: Mapping[str, int]) -> None:
        """Load answers collected elsewhere (e.g. by a client) in one go."""
        self._require(ExamState.IN_PROGRESS, "record_answers")
        by_id = {q.id: q for q in self.exam.questions}
        for question_id, option_index in answers.items():
            question = by_id.get(question_id)
            if question is None:
                raise InvalidRequestError(f"Unknown question id '{question_id}'.")
            if not 0 <= option_index < len(question.options):
                raise InvalidRequestError(
                    f"Option {option_index} does not exist for question '{question_id}'."
                )
            self.selections[question_id] = option_index

    def finish(self) -> List[WeakPointSchema]:
        self._require(ExamState.IN_PROGRESS, "finish")
        self.weak_points = derive_weak_points(self.exam, self.selections)
        self.state = ExamState.FINISHED
        self.exit_pending = False
        logger.info(
            "Exam %r finished: %d/%d correct, %d weak point(s)",
            self.exam.exam_title,
            len(self.exam.questions) - len(self.weak_points),
            len(self.exam.questions),
            len(self.weak_points),
        )
        return self.weak_points

    # ------------------------------------------------------------------
    # Exit guard
    # ------------------------------------------------------------------

    def request_exit(self) -> bool:
        """
        True when leaving loses nothing. Mid-exam the exit is held pending
        until ``confirm_exit`` or ``cancel_exit``.
        """
        if self.state != ExamState.IN_PROGRESS:
            return True
        self.exit_pending = True
        return False

    def cancel_exit(self) -> None:
        self.exit_pending = False

    def confirm_exit(self) -> None:
        """Leave mid-exam, discarding progress without deriving weak points."""
        if not self.exit_pending:
            raise ExamStateError("No exit is pending.")
        self.exam = None
        self.selections = {}
        self.current_index = 0
        self.exit_pending = False
        self.state = ExamState.LOADING

    # ------------------------------------------------------------------

    def _require(self, state: ExamState, operation: str) -> None:
        if self.state != state:
            raise ExamStateError(
                f"Cannot {operation} while the exam is {self.state.value}."
            )
