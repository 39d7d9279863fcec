import pytest

from app import crud, models
from app.errors import NotFoundError, QuotaExceededError


def _user(session_factory, **fields):
    db = session_factory()
    user = crud.create_user(db, "racer@example.com", "password123")
    for k, v in fields.items():
        setattr(user, k, v)
    db.commit()
    user_id = user.id
    db.close()
    return user_id


def test_gate_reads_fresh_count_when_caller_already_loaded(session_factory):
    user_id = _user(session_factory, ai_usage_count=9)
    a, b = session_factory(), session_factory()
    try:
        # b resolved the caller before a spent the last credit
        assert b.get(models.User, user_id).ai_usage_count == 9
        assert crud.consume_ai_credit(a, user_id) == 10
        with pytest.raises(QuotaExceededError):
            crud.consume_ai_credit(b, user_id)
    finally:
        a.close()
        b.close()

    check = session_factory()
    assert check.get(models.User, user_id).ai_usage_count == 10
    check.close()


def test_concurrent_admissions_are_both_counted(session_factory):
    user_id = _user(session_factory, ai_usage_count=5)
    a, b = session_factory(), session_factory()
    try:
        b.get(models.User, user_id)
        assert crud.consume_ai_credit(a, user_id) == 6
        assert crud.consume_ai_credit(b, user_id) == 7
    finally:
        a.close()
        b.close()


def test_plan_and_stored_limits(session_factory):
    db = session_factory()
    try:
        user = crud.create_user(db, "limits@example.com", "password123")
        assert crud.credit_limit_for(user) == 10
        user.ai_usage_monthly_limit = 25
        assert crud.credit_limit_for(user) == 25
        user.plan = "pro_monthly"
        assert crud.credit_limit_for(user) == 300
    finally:
        db.close()


def test_unknown_user(session_factory):
    db = session_factory()
    try:
        with pytest.raises(NotFoundError):
            crud.consume_ai_credit(db, 4242)
    finally:
        db.close()
