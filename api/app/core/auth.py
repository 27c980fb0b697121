from dataclasses import dataclass, field

from jose import JWTError, jwt


class AuthError(Exception):
    """Raised when a bearer credential is missing or cannot be read."""


@dataclass(slots=True)
class Principal:
    subject: str
    groups: list[str] = field(default_factory=list)

    def in_group(self, group: str) -> bool:
        return group in self.groups

    def can_access_clinic(self, clinic_id: str, *, root_group: str) -> bool:
        return self.in_group(root_group) or self.subject == clinic_id


def extract_principal(authorization: str | None) -> Principal:
    """Read subject and groups from an access token's claims.

    Signatures are verified by the gateway in front of this service; only the
    claims are read here.
    """
    if not authorization:
        raise AuthError("Authorization header missing")

    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("Invalid authorization header format. Expected 'Bearer <token>'")

    try:
        claims = jwt.get_unverified_claims(token.strip())
    except JWTError as exc:
        raise AuthError("Failed to decode access token") from exc

    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject:
        raise AuthError("User sub not found in token claims")

    raw_groups = claims.get("cognito:groups", claims.get("groups", []))
    if isinstance(raw_groups, str):
        raw_groups = [raw_groups]
    groups = [group for group in raw_groups if isinstance(group, str)] if isinstance(raw_groups, list) else []
    return Principal(subject=subject, groups=groups)
