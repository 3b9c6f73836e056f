"""
PIN verification tests.

Verifies:
- Format is checked before any lookup or audit write
- Mismatches and unknown employees fail closed
- Lockout after repeated failures, reset by a success
- PIN change requires the current PIN
"""

from datetime import timedelta

import pytest

from pantry.errors import InvalidPinError, PinLockedError, ValidationError
from pantry.models import SecurityEvent
from pantry.models.security import EVENT_PIN_FAILED, EVENT_PIN_LOCKED, EVENT_PIN_VERIFIED
from pantry.services import pin_service
from conftest import EMPLOYEE_PIN


def _events(db_session, event_type=None):
    query = db_session.query(SecurityEvent)
    if event_type:
        query = query.filter_by(event_type=event_type)
    return query.all()


class TestFormat:

    @pytest.mark.parametrize("pin", ["12a4", "123", "12345", "", " 1234", "１２３４", None, 1234, "12.4"])
    def test_malformed_pin_rejected_without_lookup(self, db_session, employee, pin):
        with pytest.raises(ValidationError):
            pin_service.verify_pin("EMP001", pin)

        assert _events(db_session) == []

    def test_pins_are_hashed(self, employee):
        assert employee.secret_pin_hash
        assert EMPLOYEE_PIN not in employee.secret_pin_hash
        assert pin_service.check_pin(EMPLOYEE_PIN, employee.secret_pin_hash)

    def test_check_pin_handles_missing_or_bad_hash(self):
        assert pin_service.check_pin("1234", None) is False
        assert pin_service.check_pin("1234", "not-a-bcrypt-hash") is False


class TestVerify:

    def test_correct_pin(self, db_session, employee):
        assert pin_service.verify_pin("EMP001", EMPLOYEE_PIN, actor="VEN001") is True

        events = _events(db_session, EVENT_PIN_VERIFIED)
        assert len(events) == 1
        assert events[0].employee_id == employee.id
        assert events[0].actor == "VEN001"

    def test_employee_code_is_case_insensitive(self, employee):
        assert pin_service.verify_pin(" emp001 ", EMPLOYEE_PIN) is True

    def test_wrong_pin(self, db_session, employee):
        assert pin_service.verify_pin("EMP001", "0000") is False
        assert len(_events(db_session, EVENT_PIN_FAILED)) == 1

    def test_unknown_employee_not_verified(self, db_session, employee):
        assert pin_service.verify_pin("NOPE99", EMPLOYEE_PIN) is False

        failed = _events(db_session, EVENT_PIN_FAILED)
        assert len(failed) == 1
        assert failed[0].employee_id is None

    def test_vendor_accounts_have_no_pin(self, vendor):
        assert pin_service.verify_pin("VEN001", "1234") is False

    def test_authorize_pin_raises_on_mismatch(self, employee):
        with pytest.raises(InvalidPinError):
            pin_service.authorize_pin("EMP001", "0000")

        assert pin_service.authorize_pin("EMP001", EMPLOYEE_PIN).id == employee.id


class TestLockout:

    def test_locks_after_max_failures(self, app, db_session, employee):
        for _ in range(app.config["PIN_MAX_FAILED_ATTEMPTS"]):
            assert pin_service.verify_pin("EMP001", "0000") is False

        with pytest.raises(PinLockedError) as exc:
            pin_service.verify_pin("EMP001", EMPLOYEE_PIN)

        assert exc.value.details["seconds_until_unlock"] > 0
        assert len(_events(db_session, EVENT_PIN_LOCKED)) == 1
        assert _events(db_session, EVENT_PIN_VERIFIED) == []

    def test_lockout_is_per_employee(self, app, employee, other_employee):
        for _ in range(app.config["PIN_MAX_FAILED_ATTEMPTS"]):
            pin_service.verify_pin("EMP001", "0000")

        assert pin_service.verify_pin("EMP002", "9876") is True

    def test_success_resets_failure_count(self, app, employee):
        max_attempts = app.config["PIN_MAX_FAILED_ATTEMPTS"]
        for _ in range(max_attempts - 1):
            pin_service.verify_pin("EMP001", "0000")
        assert pin_service.verify_pin("EMP001", EMPLOYEE_PIN) is True

        for _ in range(max_attempts - 1):
            pin_service.verify_pin("EMP001", "0000")

        assert pin_service.verify_pin("EMP001", EMPLOYEE_PIN) is True

    def test_old_failures_expire(self, app, db_session, employee):
        for _ in range(app.config["PIN_MAX_FAILED_ATTEMPTS"]):
            pin_service.verify_pin("EMP001", "0000")

        window = timedelta(minutes=app.config["PIN_LOCKOUT_WINDOW_MINUTES"] + 1)
        for event in _events(db_session, EVENT_PIN_FAILED):
            event.occurred_at = event.occurred_at - window
        db_session.commit()

        assert pin_service.verify_pin("EMP001", EMPLOYEE_PIN) is True

    def test_lockout_status(self, app, employee):
        pin_service.verify_pin("EMP001", "0000")
        status = pin_service.get_pin_lockout_status("EMP001")

        assert status["locked"] is False
        assert status["failed_attempts"] == 1
        assert status["max_attempts"] == app.config["PIN_MAX_FAILED_ATTEMPTS"]


class TestChangePin:

    def test_change_pin(self, employee):
        pin_service.change_pin(employee, EMPLOYEE_PIN, "4321")

        assert pin_service.verify_pin("EMP001", "4321") is True
        assert pin_service.verify_pin("EMP001", EMPLOYEE_PIN) is False

    def test_change_pin_requires_current(self, employee):
        with pytest.raises(InvalidPinError):
            pin_service.change_pin(employee, "0000", "4321")

        assert pin_service.verify_pin("EMP001", EMPLOYEE_PIN) is True

    def test_new_pin_must_be_four_digits(self, employee):
        with pytest.raises(ValidationError):
            pin_service.change_pin(employee, EMPLOYEE_PIN, "12345")
