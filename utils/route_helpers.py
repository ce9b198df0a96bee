import sqlite3
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Optional
from fastapi import HTTPException, Depends, Request
from fastapi.security import OAuth2PasswordBearer
from pydantic import ValidationError
from database import get_db
from auth import verify_token
from file_utils import StorageError
from session_gate import AuthSession, Identity, Role, SessionGate

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

STAFF_ROLES = ("admin", "subadmin")

def get_user_role(user_id: int) -> Optional[str]:
    """Fresh role lookup from user_roles; None for users without a role row."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT role FROM user_roles WHERE user_id = ?", (user_id,))
        row = cursor.fetchone()
        return row[0] if row else None

def ensure_role(user_id: int, allowed: Iterable[str], message: str):
    """Store-side permission check; never trusts a cached identity."""
    if get_user_role(user_id) not in tuple(allowed):
        logger.warning(f"User {user_id} rejected: {message}")
        raise HTTPException(status_code=403, detail=message)

def first_error_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid input"
    message = errors[0].get("msg", "Invalid input")
    # pydantic prefixes messages raised from validators
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return message

@contextmanager
def validation_errors():
    """Surface the first failing field as a 400 before anything touches the store."""
    try:
        yield
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=first_error_message(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@contextmanager
def store_errors(action_message: str):
    """Log collaborator failures and replace them with a generic, action-specific notice."""
    try:
        yield
    except (sqlite3.Error, StorageError, OSError) as e:
        logger.exception(f"{action_message}: {e}")
        raise HTTPException(status_code=500, detail=action_message)

def get_session_by_id(session_id: str):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            SELECT s.id, s.user_id, u.email, s.expires_at
            FROM auth_sessions s
            JOIN users u ON u.id = s.user_id
            WHERE s.id = ?
        """, (session_id,))
        return cursor.fetchone()

def session_from_token(token: Optional[str], gate: Optional[SessionGate] = None) -> Optional[AuthSession]:
    """Resolve a bearer token to its live session; projections of dead sessions are dropped from the gate."""
    if not token:
        return None
    payload = verify_token(token)
    if not payload:
        return None
    row = get_session_by_id(payload["sid"])
    if not row or str(row[1]) != str(payload["sub"]):
        if gate is not None:
            gate.forget_session(payload["sid"])
        return None
    expires_at = datetime.fromisoformat(row[3])
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if expires_at <= datetime.now(timezone.utc):
        if gate is not None:
            gate.forget_session(row[0])
        return None
    return AuthSession(session_id=row[0], user_id=row[1], email=row[2])

def get_current_session(request: Request, token: Optional[str] = Depends(oauth2_scheme)) -> Optional[AuthSession]:
    return session_from_token(token, request.app.state.session_gate)

def get_identity(request: Request, session: Optional[AuthSession] = Depends(get_current_session)) -> Identity:
    return request.app.state.session_gate.identity_for(session)

def reject(status_code: int, message: str, redirect_to: str):
    raise HTTPException(status_code=status_code, detail={"message": message, "redirect_to": redirect_to})

def require_staff(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_authenticated:
        reject(401, "Please login first", "/auth")
    if not identity.can_access_dashboard:
        reject(403, "Access denied. Admin or Sub-Admin access required.", "/")
    return identity

def require_admin(identity: Identity = Depends(require_staff)) -> Identity:
    if identity.role != Role.ADMIN:
        reject(403, "Only admins can perform this action.", "/admin")
    return identity
