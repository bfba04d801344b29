import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from clinic_backend.auth.dependencies import get_current_actor
from clinic_backend.auth.jwt_handler import create_access_token, decode_access_token
from clinic_backend.models.user import UserType


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme='Bearer', credentials=token)


def test_access_token_carries_subject_and_role() -> None:
    payload = decode_access_token(create_access_token(42, UserType.MEDICAL_STAFF))

    assert payload['sub'] == '42'
    assert payload['user_type'] == 'MEDICAL_STAFF'
    assert payload['exp'] > payload['iat']


def test_get_current_actor_resolves_staff_clinic(clinic_db, seeded) -> None:
    token = create_access_token(seeded.staff.id, UserType.MEDICAL_STAFF)

    actor = get_current_actor(credentials=_credentials(token), db=clinic_db)

    assert actor.id == seeded.staff.id
    assert actor.is_staff
    assert actor.clinic_id == seeded.clinic.id


def test_get_current_actor_rejects_garbage_token(clinic_db, seeded) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_current_actor(credentials=_credentials('not-a-jwt'), db=clinic_db)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Invalid token'


def test_get_current_actor_rejects_role_mismatch(clinic_db, seeded) -> None:
    token = create_access_token(seeded.parent.id, UserType.ADMIN)

    with pytest.raises(HTTPException) as exception_info:
        get_current_actor(credentials=_credentials(token), db=clinic_db)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'User not found'


def test_get_current_actor_rejects_expired_token(clinic_db, seeded) -> None:
    token = create_access_token(seeded.parent.id, UserType.PARENT, expires_minutes=-1)

    with pytest.raises(HTTPException) as exception_info:
        get_current_actor(credentials=_credentials(token), db=clinic_db)

    assert exception_info.value.detail == 'Invalid token'
