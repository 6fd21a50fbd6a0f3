"""Unit tests for panel token verification and role checks."""
from datetime import datetime, timedelta

import jwt
import pytest
from fastapi import HTTPException

from billingcore.auth.jwt import PanelTokenVerifier
from billingcore.auth.rbac import Role, check_role_hierarchy, require_roles

SECRET = "unit-test-secret"


def _token(claims: dict, key: str = SECRET) -> str:
    payload = {"exp": datetime.utcnow() + timedelta(minutes=5), **claims}
    return jwt.encode(payload, key, algorithm="HS256")


def test_verify_returns_claims_with_integer_subject() -> None:
    """The subject is normalized to an int user ID."""
    verifier = PanelTokenVerifier(SECRET)

    claims = verifier.verify(_token({"sub": "42", "role": "admin", "uuid": "u-42"}))

    assert claims["sub"] == 42
    assert claims["role"] == "admin"
    assert claims["uuid"] == "u-42"


def test_verify_rejects_wrong_signature() -> None:
    """Tokens signed with another key are invalid."""
    verifier = PanelTokenVerifier(SECRET)

    with pytest.raises(jwt.InvalidTokenError):
        verifier.verify(_token({"sub": "1", "role": "user"}, key="other-secret"))


def test_verify_rejects_missing_role() -> None:
    """sub and role are required claims."""
    verifier = PanelTokenVerifier(SECRET)

    with pytest.raises(jwt.MissingRequiredClaimError):
        verifier.verify(_token({"sub": "1"}))


def test_verify_rejects_non_numeric_subject() -> None:
    """The subject must be a panel user ID."""
    verifier = PanelTokenVerifier(SECRET)

    with pytest.raises(jwt.InvalidTokenError):
        verifier.verify(_token({"sub": "alice", "role": "user"}))


def test_verify_rejects_expired_token() -> None:
    """Expired tokens raise ExpiredSignatureError."""
    verifier = PanelTokenVerifier(SECRET)
    token = jwt.encode(
        {"sub": "1", "role": "user", "exp": datetime.utcnow() - timedelta(minutes=1)},
        SECRET,
        algorithm="HS256",
    )

    with pytest.raises(jwt.ExpiredSignatureError):
        verifier.verify(token)


def test_role_hierarchy() -> None:
    """Admins satisfy user requirements; users never satisfy admin ones."""
    assert check_role_hierarchy("admin", [Role.ADMIN])
    assert check_role_hierarchy("admin", [Role.USER])
    assert check_role_hierarchy("user", [Role.USER])
    assert not check_role_hierarchy("user", [Role.ADMIN])
    assert not check_role_hierarchy("superuser", [Role.USER])


@pytest.mark.asyncio
async def test_require_roles_decorator() -> None:
    """The decorator passes admins through and rejects everyone else."""

    @require_roles(Role.ADMIN)
    async def endpoint(current_user: dict) -> str:
        return "ok"

    assert await endpoint(current_user={"sub": 1, "role": "admin"}) == "ok"

    with pytest.raises(HTTPException) as forbidden:
        await endpoint(current_user={"sub": 2, "role": "user"})
    assert forbidden.value.status_code == 403

    with pytest.raises(HTTPException) as unauthenticated:
        await endpoint(current_user=None)
    assert unauthenticated.value.status_code == 401
