import random
from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from quiz_engine.errors import InvalidStateError, NotFoundError, PayloadValidationError
from quiz_engine.models import AttemptStatus, QuizAttempt, UserRole
from quiz_engine.services.attempt_session import AttemptSessionManager
from tests.conftest import BrokenNotifier, T0, long_answer, mcq, mcq_multiple, short_answer, true_false


@pytest.fixture
def manager(db, clock, notifier):
    return AttemptSessionManager(db, notifier=notifier, clock=clock, rng=random.Random(3))


def answer(question, *selected, written=None):
    return {
        "question_id": str(question.id),
        "selected_options": list(selected),
        "written_answer": written,
    }


async def attempt_count(db):
    result = await db.execute(select(func.count(QuizAttempt.id)))
    return result.scalar()


# --------------------------
# start
# --------------------------
async def test_start_creates_attempt_with_server_side_expiry(manager, quiz_factory):
    quiz, questions = await quiz_factory(duration=30)

    session = await manager.start(quiz.id, "student-1")

    attempt = session["attempt"]
    assert session["created"] is True
    assert attempt.attempt_number == 1
    assert attempt.status == AttemptStatus.IN_PROGRESS
    assert attempt.started_at == T0
    assert attempt.expires_at == T0 + timedelta(minutes=30)
    assert session["time_remaining"] == 30 * 60
    assert attempt.questions_order == [str(q.id) for q in questions]


async def test_start_twice_resumes_the_same_attempt(manager, quiz_factory, clock, db):
    quiz, _ = await quiz_factory(max_attempts=3)

    first = await manager.start(quiz.id, "student-1")
    clock.advance(minutes=5)
    second = await manager.start(quiz.id, "student-1")

    assert second["created"] is False
    assert second["attempt"].id == first["attempt"].id
    assert second["attempt"].attempt_number == 1
    assert second["time_remaining"] == 25 * 60
    assert await attempt_count(db) == 1


async def test_sanitized_questions_hide_correct_answers(manager, quiz_factory):
    quiz, _ = await quiz_factory(questions=[mcq(), short_answer()])

    session = await manager.start(quiz.id, "student-1")

    for question in session["questions"]:
        assert "correct_answer" not in question
        assert all(set(opt) == {"id", "text"} for opt in question["options"])


async def test_start_rejects_unknown_quiz(manager):
    with pytest.raises(NotFoundError):
        await manager.start(uuid4(), "student-1")


async def test_start_rejects_unpublished_quiz(manager, quiz_factory):
    quiz, _ = await quiz_factory(publish=False)

    with pytest.raises(InvalidStateError, match="not currently available"):
        await manager.start(quiz.id, "student-1")


async def test_start_rejects_before_window_opens(manager, quiz_factory):
    quiz, _ = await quiz_factory(start_at=T0 + timedelta(hours=1), end_at=T0 + timedelta(hours=2))

    with pytest.raises(InvalidStateError, match="not started yet"):
        await manager.start(quiz.id, "student-1")


async def test_start_rejects_after_window_without_late_submissions(manager, quiz_factory):
    quiz, _ = await quiz_factory(end_at=T0 - timedelta(hours=1))

    with pytest.raises(InvalidStateError, match="ended"):
        await manager.start(quiz.id, "student-1")


async def test_attempt_cap_counts_every_status(manager, quiz_factory):
    quiz, _ = await quiz_factory(max_attempts=2)

    for _ in range(2):
        session = await manager.start(quiz.id, "student-1")
        await manager.submit(session["attempt"].id, "student-1", answers=[])

    with pytest.raises(InvalidStateError, match=r"Maximum attempts \(2\)"):
        await manager.start(quiz.id, "student-1")


async def test_attempt_numbers_increase_per_student(manager, quiz_factory):
    quiz, _ = await quiz_factory(max_attempts=3)

    first = await manager.start(quiz.id, "student-1")
    await manager.submit(first["attempt"].id, "student-1", answers=[])
    second = await manager.start(quiz.id, "student-1")
    other = await manager.start(quiz.id, "student-2")

    assert second["attempt"].attempt_number == 2
    assert other["attempt"].attempt_number == 1


async def test_shuffled_order_is_fixed_per_attempt(db, clock, quiz_factory):
    quiz, questions = await quiz_factory(
        questions=[mcq(text=f"Q{i}") for i in range(6)],
        shuffle_questions=True,
        max_attempts=1,
    )
    manager = AttemptSessionManager(db, clock=clock, rng=random.Random(11))

    first = await manager.start(quiz.id, "student-1")
    second = await manager.start(quiz.id, "student-2")
    resumed = await manager.start(quiz.id, "student-1")

    ids = sorted(str(q.id) for q in questions)
    assert sorted(first["attempt"].questions_order) == ids
    assert sorted(second["attempt"].questions_order) == ids
    assert resumed["attempt"].questions_order == first["attempt"].questions_order
    assert [str(q["id"]) for q in resumed["questions"]] == first["attempt"].questions_order


async def test_shuffled_options_survive_resume(db, clock, quiz_factory):
    quiz, _ = await quiz_factory(
        questions=[mcq_multiple(), true_false(), short_answer()],
        shuffle_options=True,
    )
    manager = AttemptSessionManager(db, clock=clock, rng=random.Random(5))

    first = await manager.start(quiz.id, "student-1")
    resumed = await manager.start(quiz.id, "student-1")

    def option_ids(session):
        return [[opt["id"] for opt in q["options"]] for q in session["questions"]]

    assert option_ids(resumed) == option_ids(first)
    assert set(first["attempt"].option_orders) == {
        str(q["id"]) for q in first["questions"] if q["options"]
    }


async def test_concurrent_start_resumes_the_winner(db, clock, quiz_factory, monkeypatch):
    quiz, _ = await quiz_factory(max_attempts=2)
    winner = await AttemptSessionManager(db, clock=clock).start(quiz.id, "student-1")
    winner_id = winner["attempt"].id
    quiz_id = quiz.id

    manager = AttemptSessionManager(db, clock=clock)
    real_lookup = manager.attempts.find_in_progress
    calls = []

    async def missed_first_lookup(quiz_id, student_id):
        calls.append(quiz_id)
        if len(calls) == 1:
            return None
        return await real_lookup(quiz_id, student_id)

    monkeypatch.setattr(manager.attempts, "find_in_progress", missed_first_lookup)

    session = await manager.start(quiz_id, "student-1")

    assert session["created"] is False
    assert session["attempt"].id == winner_id
    assert await attempt_count(db) == 1


async def test_database_refuses_second_in_progress_attempt(session_factory, quiz_factory):
    quiz, _ = await quiz_factory()

    async with session_factory() as session:
        for number in (1, 2):
            session.add(QuizAttempt(
                quiz_id=quiz.id,
                student_id="student-1",
                attempt_number=number,
                started_at=T0,
                expires_at=T0 + timedelta(minutes=30),
                status=AttemptStatus.IN_PROGRESS,
                max_score=3,
            ))
        with pytest.raises(IntegrityError):
            await session.commit()


# --------------------------
# save progress
# --------------------------
async def test_save_progress_replaces_answers(manager, quiz_factory, db):
    quiz, questions = await quiz_factory()
    session = await manager.start(quiz.id, "student-1")
    attempt_id = session["attempt"].id

    await manager.save_progress(attempt_id, "student-1", [answer(questions[0], "a"), answer(questions[1], "b")])
    saved = await manager.save_progress(attempt_id, "student-1", [answer(questions[2], "c")])

    status = await manager.get_status(attempt_id, "student-1")
    assert saved["saved"] is True
    assert [a["question_id"] for a in status["answers"]] == [str(questions[2].id)]


async def test_save_progress_hides_other_students_attempts(manager, quiz_factory):
    quiz, questions = await quiz_factory()
    session = await manager.start(quiz.id, "student-1")

    with pytest.raises(NotFoundError):
        await manager.save_progress(session["attempt"].id, "student-2", [answer(questions[0], "a")])


async def test_save_progress_refused_once_time_is_up(manager, quiz_factory, clock):
    quiz, questions = await quiz_factory(duration=10)
    session = await manager.start(quiz.id, "student-1")

    clock.advance(minutes=10)

    with pytest.raises(InvalidStateError, match="expired"):
        await manager.save_progress(session["attempt"].id, "student-1", [answer(questions[0], "a")])


async def test_save_progress_rejects_foreign_questions(manager, quiz_factory):
    quiz, _ = await quiz_factory()
    session = await manager.start(quiz.id, "student-1")

    with pytest.raises(PayloadValidationError):
        await manager.save_progress(session["attempt"].id, "student-1", [
            {"question_id": "somebody-elses-question", "selected_options": ["a"]},
        ])


async def test_save_progress_after_submit_is_not_found(manager, quiz_factory):
    quiz, questions = await quiz_factory()
    session = await manager.start(quiz.id, "student-1")
    await manager.submit(session["attempt"].id, "student-1", answers=[])

    with pytest.raises(NotFoundError):
        await manager.save_progress(session["attempt"].id, "student-1", [answer(questions[0], "a")])


# --------------------------
# submit
# --------------------------
async def test_two_of_three_correct(manager, quiz_factory, notifier):
    quiz, questions = await quiz_factory(duration=30, max_attempts=1)
    session = await manager.start(quiz.id, "student-1")

    result = await manager.submit(session["attempt"].id, "student-1", answers=[
        answer(questions[0], "a"),
        answer(questions[1], "a"),
        answer(questions[2], "b"),
    ])

    assert result["score"] == 2
    assert result["max_score"] == 3
    assert result["percentage"] == 67
    assert result["status"] == "graded"
    assert notifier.events[-1][1] == "attempt.submitted"


async def test_submit_fills_in_unanswered_questions(manager, quiz_factory, db):
    quiz, questions = await quiz_factory()
    session = await manager.start(quiz.id, "student-1")

    await manager.submit(session["attempt"].id, "student-1", answers=[answer(questions[0], "a")])

    attempt = await db.get(QuizAttempt, session["attempt"].id)
    assert len(attempt.answers) == 3
    unanswered = [a for a in attempt.answers if a["question_id"] != str(questions[0].id)]
    assert all(a["points_awarded"] == 0 and a["feedback"] == "Not answered" for a in unanswered)


async def test_manual_questions_leave_attempt_submitted(manager, quiz_factory):
    quiz, questions = await quiz_factory(questions=[mcq(), long_answer(points=5)])
    session = await manager.start(quiz.id, "student-1")

    result = await manager.submit(session["attempt"].id, "student-1", answers=[
        answer(questions[0], "a"),
        answer(questions[1], written="Light becomes sugar"),
    ])

    assert result["status"] == "submitted"
    assert result["score"] == 1
    assert result["percentage"] == 17


async def test_late_attempt_always_waits_for_review(manager, quiz_factory):
    quiz, questions = await quiz_factory(
        end_at=T0 - timedelta(hours=1), allow_late_submissions=True,
    )

    session = await manager.start(quiz.id, "student-1")
    assert session["attempt"].is_late is True

    result = await manager.submit(
        session["attempt"].id, "student-1", answers=[answer(q, "a") for q in questions]
    )

    assert result["status"] == "submitted"
    assert result["percentage"] == 100


async def test_retried_submit_does_not_score_twice(manager, quiz_factory, db):
    quiz, questions = await quiz_factory()
    session = await manager.start(quiz.id, "student-1")
    attempt_id = session["attempt"].id

    await manager.submit(attempt_id, "student-1", answers=[answer(questions[0], "a")])
    with pytest.raises(InvalidStateError, match="already submitted"):
        await manager.submit(attempt_id, "student-1", answers=[answer(q, "a") for q in questions])

    attempt = await db.get(QuizAttempt, attempt_id)
    assert attempt.score == 1


async def test_submit_without_answers_grades_saved_progress(manager, quiz_factory, clock):
    quiz, questions = await quiz_factory(duration=10)
    session = await manager.start(quiz.id, "student-1")
    attempt_id = session["attempt"].id

    await manager.save_progress(attempt_id, "student-1", [answer(questions[0], "a"), answer(questions[1], "a")])
    clock.advance(minutes=12)

    status = await manager.get_status(attempt_id, "student-1")
    assert status["has_expired"] is True
    assert status["time_remaining"] == 0

    result = await manager.submit(attempt_id, "student-1", answers=None, is_auto_submit=True)

    assert result["score"] == 2
    assert result["is_auto_submitted"] is True


async def test_submit_sets_pass_flag(manager, quiz_factory):
    quiz, questions = await quiz_factory(passing_score=60)
    session = await manager.start(quiz.id, "student-1")

    result = await manager.submit(session["attempt"].id, "student-1", answers=[
        answer(questions[0], "a"), answer(questions[1], "a"),
    ])

    assert result["percentage"] == 67
    assert result["is_passed"] is True


async def test_submit_hides_score_when_results_are_hidden(manager, quiz_factory):
    quiz, questions = await quiz_factory(show_results_after_submit=False)
    session = await manager.start(quiz.id, "student-1")

    result = await manager.submit(session["attempt"].id, "student-1", answers=[answer(questions[0], "a")])

    assert result["results_hidden"] is True
    assert "score" not in result
    assert "percentage" not in result


async def test_submit_of_someone_elses_attempt_is_not_found(manager, quiz_factory):
    quiz, _ = await quiz_factory()
    session = await manager.start(quiz.id, "student-1")

    with pytest.raises(NotFoundError):
        await manager.submit(session["attempt"].id, "student-2", answers=[])


async def test_failing_notifications_do_not_fail_submit(db, clock, quiz_factory):
    quiz, questions = await quiz_factory()
    manager = AttemptSessionManager(db, notifier=BrokenNotifier(), clock=clock)
    session = await manager.start(quiz.id, "student-1")

    result = await manager.submit(session["attempt"].id, "student-1", answers=[answer(questions[0], "a")])

    assert result["status"] == "graded"


# --------------------------
# status / results / listing
# --------------------------
async def test_status_hides_answers_after_submit(manager, quiz_factory):
    quiz, questions = await quiz_factory()
    session = await manager.start(quiz.id, "student-1")
    attempt_id = session["attempt"].id
    await manager.save_progress(attempt_id, "student-1", [answer(questions[0], "a")])

    assert len((await manager.get_status(attempt_id, "student-1"))["answers"]) == 1

    await manager.submit(attempt_id, "student-1", answers=None)
    status = await manager.get_status(attempt_id, "student-1")

    assert status["status"] == AttemptStatus.GRADED
    assert status["answers"] == []
    assert status["time_remaining"] == 0


async def test_results_require_a_finished_attempt(manager, quiz_factory):
    quiz, _ = await quiz_factory()
    session = await manager.start(quiz.id, "student-1")

    with pytest.raises(InvalidStateError, match="not yet submitted"):
        await manager.get_results(session["attempt"].id, "student-1", UserRole.STUDENT)


async def test_students_only_see_their_own_results(manager, quiz_factory):
    quiz, _ = await quiz_factory()
    session = await manager.start(quiz.id, "student-1")
    await manager.submit(session["attempt"].id, "student-1", answers=[])

    with pytest.raises(NotFoundError):
        await manager.get_results(session["attempt"].id, "student-2", UserRole.STUDENT)

    teacher_view = await manager.get_results(session["attempt"].id, "teacher-1", UserRole.TEACHER)
    assert teacher_view["attempt"]["score"] == 0
    assert len(teacher_view["questions"]) == 3


async def test_list_attempts_newest_first(manager, quiz_factory):
    quiz, _ = await quiz_factory(max_attempts=3)
    for _ in range(2):
        session = await manager.start(quiz.id, "student-1")
        await manager.submit(session["attempt"].id, "student-1", answers=[])

    attempts = await manager.list_attempts_for_student(quiz.id, "student-1")

    assert [a["attempt_number"] for a in attempts] == [2, 1]
    assert "score" in attempts[0]


async def test_list_attempts_respects_hidden_results(manager, quiz_factory):
    quiz, _ = await quiz_factory(show_results_after_submit=False)
    session = await manager.start(quiz.id, "student-1")
    await manager.submit(session["attempt"].id, "student-1", answers=[])

    attempts = await manager.list_attempts_for_student(quiz.id, "student-1")

    assert "score" not in attempts[0]
    assert attempts[0]["status"] == "graded"
