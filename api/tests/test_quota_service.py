"""
Tests for the monthly AI quota counter.
"""
import threading
import uuid
from datetime import date

import pytest
from sqlmodel import SQLModel, Session, select

from conftest import TODAY
from flashrecall.core.database import build_engine
from flashrecall.core.exceptions import ProfileNotFoundError, QuotaExceededError, ValidationError
from flashrecall.models.models import Profile
from flashrecall.services.quota_service import check_and_reserve, get_usage, release

MONTH_START = date(2024, 6, 1)


def stored_counter(session, user_id):
    return session.exec(
        select(Profile.monthly_ai_flashcards_count, Profile.ai_limit_reset_date)
        .where(Profile.user_id == user_id)
    ).one()


class TestCheckAndReserve:
    def test_reserve_within_limit(self, session, make_profile):
        profile = make_profile(count=20, reset_date=MONTH_START)

        reservation = check_and_reserve(session, profile.user_id, 30, today=TODAY, limit=200)

        assert reservation.approved is True
        assert reservation.reserved == 30
        assert reservation.remaining == 150
        assert reservation.reset_date == MONTH_START
        assert stored_counter(session, profile.user_id) == (50, MONTH_START)

    def test_reserve_up_to_exact_limit(self, session, make_profile):
        profile = make_profile(count=190, reset_date=MONTH_START)

        reservation = check_and_reserve(session, profile.user_id, 10, today=TODAY, limit=200)

        assert reservation.remaining == 0
        assert stored_counter(session, profile.user_id)[0] == 200

    def test_reserve_over_limit_is_refused(self, session, make_profile):
        profile = make_profile(count=190, reset_date=MONTH_START)

        with pytest.raises(QuotaExceededError) as exc_info:
            check_and_reserve(session, profile.user_id, 20, today=TODAY, limit=200)

        error = exc_info.value
        assert error.current_count == 190
        assert error.limit == 200
        assert error.reset_date == MONTH_START
        assert error.details == {"current_count": 190, "limit": 200, "reset_date": "2024-06-01"}
        assert stored_counter(session, profile.user_id)[0] == 190

    @pytest.mark.parametrize("requested", [0, -3])
    def test_invalid_request(self, session, make_profile, requested):
        profile = make_profile(reset_date=MONTH_START)

        with pytest.raises(ValidationError):
            check_and_reserve(session, profile.user_id, requested, today=TODAY)

    def test_missing_profile(self, session):
        with pytest.raises(ProfileNotFoundError):
            check_and_reserve(session, uuid.uuid4(), 1, today=TODAY)

    def test_stale_counter_is_reset_before_reserving(self, session, make_profile):
        profile = make_profile(count=200, reset_date=date(2024, 5, 1))

        reservation = check_and_reserve(session, profile.user_id, 150, today=TODAY, limit=200)

        assert reservation.remaining == 50
        assert stored_counter(session, profile.user_id) == (150, MONTH_START)


class TestLazyReset:
    def test_usage_after_month_rollover(self, session, make_profile):
        profile = make_profile(count=200, reset_date=date(2024, 5, 1))

        usage = get_usage(session, profile.user_id, today=TODAY, limit=200)

        assert usage.count == 0
        assert usage.remaining == 200
        assert usage.reset_date == MONTH_START
        assert stored_counter(session, profile.user_id) == (0, MONTH_START)

    def test_usage_within_month_is_untouched(self, session, make_profile):
        profile = make_profile(count=45, reset_date=MONTH_START)

        usage = get_usage(session, profile.user_id, today=TODAY, limit=200)

        assert usage.count == 45
        assert usage.remaining == 155
        assert stored_counter(session, profile.user_id) == (45, MONTH_START)

    def test_usage_for_missing_profile(self, session):
        with pytest.raises(ProfileNotFoundError):
            get_usage(session, uuid.uuid4(), today=TODAY)


class TestRelease:
    def test_release_decrements(self, session, make_profile):
        profile = make_profile(count=50, reset_date=MONTH_START)

        assert release(session, profile.user_id, 20, MONTH_START) is True
        assert stored_counter(session, profile.user_id)[0] == 30

    def test_release_never_goes_below_zero(self, session, make_profile):
        profile = make_profile(count=5, reset_date=MONTH_START)

        release(session, profile.user_id, 20, MONTH_START)

        assert stored_counter(session, profile.user_id)[0] == 0

    def test_release_ignores_a_newer_period(self, session, make_profile):
        profile = make_profile(count=10, reset_date=MONTH_START)

        assert release(session, profile.user_id, 5, date(2024, 5, 1)) is False
        assert stored_counter(session, profile.user_id)[0] == 10

    def test_release_nothing(self, session, make_profile):
        profile = make_profile(count=10, reset_date=MONTH_START)

        assert release(session, profile.user_id, 0, MONTH_START) is False


def test_concurrent_reservations_cannot_both_pass(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'quota.db'}")
    SQLModel.metadata.create_all(engine)
    user_id = uuid.uuid4()
    with Session(engine) as session:
        session.add(Profile(user_id=user_id, monthly_ai_flashcards_count=0, ai_limit_reset_date=MONTH_START))
        session.commit()

    barrier = threading.Barrier(2)
    results = []

    def reserve():
        with Session(engine) as session:
            barrier.wait()
            try:
                results.append(check_and_reserve(session, user_id, 150, today=TODAY, limit=200))
            except QuotaExceededError as e:
                results.append(e)

    threads = [threading.Thread(target=reserve) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    approved = [r for r in results if not isinstance(r, QuotaExceededError)]
    refused = [r for r in results if isinstance(r, QuotaExceededError)]
    assert len(approved) == 1
    assert len(refused) == 1

    with Session(engine) as session:
        assert stored_counter(session, user_id) == (150, MONTH_START)
    engine.dispose()
