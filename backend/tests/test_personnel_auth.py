"""
Staff accounts, technicians and sessions.
"""

from datetime import timedelta

import pytest

from dealership.models import SessionToken
from dealership.services import auth_service, personnel_service, session_service
from dealership.services.auth_service import AuthError
from dealership.services.personnel_service import PersonnelError, PersonnelNotFoundError
from dealership.validation import ValidationError, ConflictError
from dealership.time_utils import utcnow


class TestPasswords:

    def test_hash_is_bcrypt_and_verifies(self):
        hashed = auth_service.hash_password("Secret123", rounds=4)
        assert hashed.startswith("$2")
        assert auth_service.verify_password("Secret123", hashed)
        assert not auth_service.verify_password("Secret124", hashed)

    @pytest.mark.parametrize("password", ["short1", "nodigitshere", "12345678"])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(auth_service.PasswordValidationError):
            auth_service.hash_password(password, rounds=4)

    def test_malformed_hash_does_not_verify(self):
        assert not auth_service.verify_password("Secret123", "not-a-hash")


class TestStaffAccounts:

    def test_create_and_authenticate(self, db_session, admin_user):
        user = auth_service.authenticate("admin", "AdminPass123")
        assert user.id == admin_user.id
        assert user.is_admin

    def test_login_by_email(self, db_session, admin_user):
        assert auth_service.authenticate("admin@shop.local", "AdminPass123").id == admin_user.id

    def test_wrong_password(self, db_session, admin_user):
        with pytest.raises(AuthError):
            auth_service.authenticate("admin", "WrongPass123")

    def test_duplicate_username(self, db_session, admin_user):
        with pytest.raises(ConflictError):
            personnel_service.create_user(
                name="Another", email="other@shop.local", username="admin", password="Another123"
            )

    def test_invalid_fields_collected(self, db_session):
        with pytest.raises(ValidationError) as exc:
            personnel_service.create_user(name="X", email="nope", username="ab", password="Whatever1", role="OWNER")
        assert len(exc.value.messages) == 4

    def test_last_admin_cannot_be_removed(self, db_session, admin_user):
        with pytest.raises(PersonnelError):
            personnel_service.delete_user(admin_user.id)

    def test_cannot_remove_self(self, db_session, admin_user, staff_user):
        with pytest.raises(PersonnelError):
            personnel_service.delete_user(staff_user.id, acting_user_id=staff_user.id)

    def test_remove_user_drops_sessions(self, db_session, admin_user, staff_user):
        _session, token = session_service.create_session(staff_user.id)
        personnel_service.delete_user(staff_user.id, acting_user_id=admin_user.id)
        assert session_service.validate_session(token) is None
        assert db_session.query(SessionToken).filter_by(user_id=staff_user.id).count() == 0

    def test_remove_missing_user(self, db_session):
        with pytest.raises(PersonnelNotFoundError):
            personnel_service.delete_user("U-missing")


class TestSessions:

    def test_token_resolves_to_user(self, db_session, staff_user):
        session, token = session_service.create_session(staff_user.id)
        assert session.token_hash != token
        assert session_service.validate_session(token).id == staff_user.id

    def test_revoked_token_rejected(self, db_session, staff_user):
        _session, token = session_service.create_session(staff_user.id)
        assert session_service.revoke_session(token)
        assert session_service.validate_session(token) is None
        assert not session_service.revoke_session(token)

    def test_expired_token_rejected(self, db_session, staff_user):
        session, token = session_service.create_session(staff_user.id)
        session.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_ttl_from_config(self, app, db_session, staff_user, monkeypatch):
        monkeypatch.setitem(app.config, "SESSION_TTL_HOURS", 2)
        session, _token = session_service.create_session(staff_user.id)
        assert session.expires_at - session.created_at == timedelta(hours=2)


class TestTechnicians:

    def test_status_update(self, db_session, technicians):
        tech = personnel_service.set_technician_status("T2", "ON_BREAK")
        assert tech.status == "ON_BREAK"

    def test_bad_status(self, db_session, technicians):
        with pytest.raises(ValidationError):
            personnel_service.set_technician_status("T2", "ASLEEP")

    def test_duplicate_name(self, db_session, technicians):
        with pytest.raises(ConflictError):
            personnel_service.create_technician(name="Carlos Sainz", specialization="Tyres")

    def test_listing_sorted_by_name(self, db_session, technicians):
        names = [t.name for t in personnel_service.list_technicians()]
        assert names == ["Aslam Pervaiz", "Carlos Sainz", "Dave Miller"]
