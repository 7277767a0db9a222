"""Request identity and machine access checks"""
from typing import Optional
import logging

from fastapi import HTTPException, Request

from errors import AccessDeniedError, NotFoundError
from models import Machine, User

logger = logging.getLogger(__name__)

OPERATOR_ROLE = 'operator'


def user_from_headers(headers) -> Optional[User]:
    """Identity forwarded by the authentication gateway, or None when absent"""
    user_id = headers.get('x-user-id')
    role = headers.get('x-user-role')
    if not user_id or not role:
        return None
    return User(
        id=user_id,
        username=headers.get('x-user-name') or user_id,
        role=role.lower(),
        department_id=headers.get('x-department-id')
    )


def get_current_user(request: Request) -> User:
    user = user_from_headers(request.headers)
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


def can_see_department(user: User, department_id: Optional[str]) -> bool:
    return user.role != OPERATOR_ROLE or user.department_id == department_id


def check_machine_access(user: User, machine: Optional[Machine], machine_id: str) -> Machine:
    """Operators may only see machines of their own department"""
    if machine is None:
        raise NotFoundError('Machine not found')
    if not can_see_department(user, machine.department_id):
        logger.warning(f"User {user.username} denied access to machine {machine_id}")
        raise AccessDeniedError('Access denied to this machine')
    return machine
