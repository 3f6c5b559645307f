"""
Request dependencies: database session, authenticated employee and role guards.

Tokens are issued by the external auth service; the ``sub`` claim carries the employee id.
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.security import decode_token
from app.db.session import get_db
from app.models.employee import Employee, Role

__all__ = ["get_db", "get_current_user", "require_roles"]

security = HTTPBearer()


def _unauthorized(detail: str = "Invalid authentication credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _employee_id_from_token(token: str) -> int:
    try:
        return int(decode_token(token)["sub"])
    except (KeyError, TypeError, ValueError):
        raise _unauthorized()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Employee:
    """
    The employee named by the bearer token. Unknown employees get 401, deactivated
    ones 403: their open sessions are closed by the sweeper, not by them.
    """
    employee_id = _employee_id_from_token(credentials.credentials)
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise _unauthorized("User not found")
    if not employee.active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return employee


def require_roles(*allowed_roles: Role):
    """
    Dependency factory for role-based access control. ADMIN passes every check.

    Usage:
        @router.post("/run")
        async def run(user: Employee = Depends(require_roles(Role.HR, Role.ADMIN))):
            ...
    """
    allowed = {role.value for role in allowed_roles} | {Role.ADMIN.value}

    def role_checker(current_user: Employee = Depends(get_current_user)) -> Employee:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {sorted(allowed)}",
            )
        return current_user

    return role_checker
