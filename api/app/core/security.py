from fastapi import Header, HTTPException, status

from app.core.auth import AuthError, Principal, extract_principal
from app.core.config import Settings


async def get_principal(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal:
    try:
        return extract_principal(authorization)
    except AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Unauthorized", "details": str(exc)},
        ) from exc


def require_clinic_access(principal: Principal, clinic_id: str, settings: Settings) -> None:
    if not principal.can_access_clinic(clinic_id, root_group=settings.root_group):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "Forbidden: You can only access your own clinic data"},
        )
