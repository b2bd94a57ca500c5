"""FastAPI dependencies for reviewer authentication and authorization.

Dependencies:
  get_current_reviewer     → decode the bearer JWT, return a Reviewer
  require_permission(...)  → restrict to reviewers holding all listed permissions
"""

from dataclasses import dataclass, field

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from onboarding.auth.jwt import decode_token
from onboarding.auth.permissions import has_permission

# Tokens are issued out of band (`python -m onboarding.cli issue-token`)
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Reviewer:
    id: str
    role: str
    permissions: list[str] = field(default_factory=list)


async def get_current_reviewer(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Reviewer:
    payload = decode_token(credentials.credentials) if credentials else {}
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Reviewer(
        id=user_id,
        role=payload.get("role", ""),
        permissions=list(payload.get("permissions", [])),
    )


def require_permission(*perms: str):
    """Dependency factory: restrict to reviewers who hold ALL listed permissions.

    Usage:
        @router.post("/applications/{application_id}/transition")
        async def transition(reviewer: Reviewer = Depends(require_permission("applications.review"))):
            ...
    """
    async def _check(reviewer: Reviewer = Depends(get_current_reviewer)) -> Reviewer:
        missing = [p for p in perms if not has_permission(reviewer.permissions, p)]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permissions: {', '.join(missing)}",
            )
        return reviewer

    return _check
