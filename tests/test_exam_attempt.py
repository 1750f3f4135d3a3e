"""Tests for the exam-taking state machine and weak-point derivation."""
import pytest

from app.exceptions import ExamStateError, InvalidRequestError
from app.models.schemas import CriticalitySchema, Exam
from app.services.exam_attempt import ExamAttempt, ExamState, derive_weak_points
from tests.fakes import sample_exam_payload


@pytest.fixture
def exam() -> Exam:
    return Exam.model_validate(sample_exam_payload())


def test_load_starts_the_exam(exam):
    attempt = ExamAttempt()
    assert attempt.state == ExamState.LOADING

    attempt.load(exam)
    assert attempt.state == ExamState.IN_PROGRESS
    assert attempt.current_question.id == "q1"


def test_generation_failure_moves_to_error():
    attempt = ExamAttempt()
    attempt.fail("upstream down")
    assert attempt.state == ExamState.ERROR
    assert attempt.error == "upstream down"

    with pytest.raises(ExamStateError):
        attempt.current_question


def test_next_requires_a_selection(exam):
    attempt = ExamAttempt()
    attempt.load(exam)

    with pytest.raises(ExamStateError):
        attempt.next()
    assert attempt.current_index == 0


def test_selection_can_be_changed_before_advancing(exam):
    attempt = ExamAttempt()
    attempt.load(exam)

    attempt.select_option(0)
    attempt.select_option(3)
    assert attempt.selections["q1"] == 3


def test_out_of_range_option_is_rejected(exam):
    attempt = ExamAttempt()
    attempt.load(exam)

    with pytest.raises(InvalidRequestError):
        attempt.select_option(4)


def test_walkthrough_derives_weak_points_for_missed_questions(exam):
    q1, q2, q3 = exam.questions
    attempt = ExamAttempt()
    attempt.load(exam)

    attempt.select_option(q1.correct_option_index)
    attempt.next()
    attempt.select_option((q2.correct_option_index + 1) % 4)
    attempt.next()
    assert attempt.is_last_question
    attempt.select_option((q3.correct_option_index + 2) % 4)
    attempt.next()

    assert attempt.state == ExamState.FINISHED
    assert [wp.matched_text_snippet for wp in attempt.weak_points] == [
        q2.question_text,
        q3.question_text,
    ]


def test_unanswered_questions_count_as_missed(exam):
    q1, q2, q3 = exam.questions
    weak_points = derive_weak_points(exam, {"q1": q1.correct_option_index})

    assert len(weak_points) == 2
    assert all(wp.criticality == CriticalitySchema.HIGH for wp in weak_points)

    wp = weak_points[0]
    assert wp.topic == "Concept: " + q2.question_text[:30] + "..."
    assert wp.description == "You missed this question. " + q2.explanation
    assert len({w.id for w in weak_points}) == 2


def test_perfect_score_has_no_weak_points(exam):
    answers = {q.id: q.correct_option_index for q in exam.questions}
    assert derive_weak_points(exam, answers) == []


def test_record_answers_validates_ids(exam):
    attempt = ExamAttempt()
    attempt.load(exam)

    with pytest.raises(InvalidRequestError):
        attempt.record_answers({"nope": 0})


def test_exit_is_free_outside_an_exam(exam):
    attempt = ExamAttempt()
    assert attempt.request_exit() is True

    attempt.load(exam)
    for question in exam.questions:
        attempt.select_option(question.correct_option_index)
        attempt.next()
    assert attempt.request_exit() is True


def test_exit_mid_exam_needs_confirmation(exam):
    attempt = ExamAttempt()
    attempt.load(exam)
    attempt.select_option(0)

    assert attempt.request_exit() is False
    attempt.cancel_exit()
    assert attempt.state == ExamState.IN_PROGRESS
    assert attempt.selections == {"q1": 0}

    with pytest.raises(ExamStateError):
        attempt.confirm_exit()

    assert attempt.request_exit() is False
    attempt.confirm_exit()
    assert attempt.state == ExamState.LOADING
    assert attempt.selections == {}
    assert attempt.weak_points == []
