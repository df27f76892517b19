"""FastAPI dependency utilities."""

from collections.abc import Callable

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from clinic_api.application.use_cases.analytics import AnalyticsService
from clinic_api.application.use_cases.notifications import NotificationService
from clinic_api.domain.entities import Principal, Role
from clinic_api.infrastructure.database import get_db
from clinic_api.infrastructure.security import decode_principal

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    """Return the caller described by the bearer token."""

    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return decode_principal(credentials.credentials)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


def require_roles(*roles: Role) -> Callable[..., Principal]:
    """Build a dependency that only lets ``roles`` through."""

    def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.has_role(*roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not authorized",
            )
        return principal

    return dependency


def get_notification_service(
    request: Request, db: Session = Depends(get_db)
) -> NotificationService:
    return NotificationService(db, request.app.state.notification_publisher)


def get_analytics_service(
    request: Request, db: Session = Depends(get_db)
) -> AnalyticsService:
    return AnalyticsService(db, request.app.state.analytics_cache)
