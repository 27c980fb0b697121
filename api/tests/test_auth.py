import pytest
from jose import jwt

from app.core.auth import AuthError, extract_principal


def _token(claims: dict) -> str:
    return jwt.encode(claims, "test-secret", algorithm="HS256")


def test_extract_principal_reads_subject_and_groups() -> None:
    principal = extract_principal(f"Bearer {_token({'sub': 'C1', 'cognito:groups': ['Root', 'Clinic']})}")

    assert principal.subject == "C1"
    assert principal.groups == ["Root", "Clinic"]
    assert principal.can_access_clinic("someone-else", root_group="Root")


def test_extract_principal_without_groups() -> None:
    principal = extract_principal(f"bearer {_token({'sub': 'C1'})}")

    assert principal.groups == []
    assert principal.can_access_clinic("C1", root_group="Root")
    assert not principal.can_access_clinic("C2", root_group="Root")


@pytest.mark.parametrize(
    ("header", "message"),
    [
        (None, "Authorization header missing"),
        ("Token abc", "Invalid authorization header format"),
        ("Bearer ", "Invalid authorization header format"),
        ("Bearer not-a-jwt", "Failed to decode access token"),
    ],
)
def test_extract_principal_rejects_bad_headers(header, message) -> None:
    with pytest.raises(AuthError, match=message):
        extract_principal(header)


def test_extract_principal_requires_subject() -> None:
    with pytest.raises(AuthError, match="User sub not found"):
        extract_principal(f"Bearer {_token({'email': 'x@example.com'})}")
