"""
FastAPI dependencies для аутентификации и авторизации.

Токены выпускает внешний сервис авторизации; здесь access-токен
только проверяется общим секретом, а sub - это ID сотрудника.
"""
from typing import Annotated
from fastapi import Depends, HTTPException, Request, status
from jose import jwt, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..database import get_db
from ..models import Employee, AppRole


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def decode_access_token(token: str, settings: Settings) -> dict | None:
    """Декодировать JWT. Возвращает payload или None при невалидном токене."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def _extract_token(request: Request) -> str | None:
    token = request.cookies.get("access_token")
    if token:
        return token
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


async def get_current_employee(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Employee:
    """
    Dependency для получения текущего сотрудника.

    Читает access-токен из cookie или заголовка Authorization.
    Выбрасывает 401 если сотрудник не аутентифицирован.
    """
    token = _extract_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )

    payload = decode_access_token(token, settings)
    if not payload or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    employee_id = payload.get("sub")
    if not employee_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"}
        )

    employee = await db.get(Employee, str(employee_id))
    if not employee or not employee.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Employee not found or inactive",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return employee


async def require_planner(
    current_employee: Employee = Depends(get_current_employee)
) -> Employee:
    """
    Требует права на планирование дежурств (ADMIN или PLANNER).
    """
    if current_employee.app_role not in [AppRole.ADMIN, AppRole.PLANNER]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Planning access required (Admin or Planner)"
        )
    return current_employee


# Type aliases для готовых dependencies
PlannerEmployee = Annotated[Employee, Depends(require_planner)]
