import uuid
import sqlite3
import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Request, Depends
from schemas.auth import SignupRequest, LoginRequest, Token, SessionResponse, AdminExistsResponse
from database import get_db
from auth import hash_password, verify_password, create_access_token, token_expiry
from session_gate import AuthEvent, AuthSession, Identity
from utils.route_helpers import get_current_session, get_identity, store_errors

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])

def admin_exists() -> bool:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT 1 FROM user_roles WHERE role = 'admin' LIMIT 1")
        return cursor.fetchone() is not None

def get_user_by_email(email: str, include_password=False):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT id, email, password_hash FROM users WHERE email = ?", (email.lower(),))
        row = cursor.fetchone()
        if not row:
            return None
        user = {"id": row[0], "email": row[1]}
        if include_password:
            user["password_hash"] = row[2]
        return user

def start_session(request: Request, user_id: int, email: str) -> Token:
    """Persist a session row, issue its token and announce the sign-in."""
    session_id = uuid.uuid4().hex
    expires_at = token_expiry()
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "INSERT INTO auth_sessions (id, user_id, expires_at) VALUES (?, ?, ?)",
            (session_id, user_id, expires_at.isoformat())
        )
        conn.commit()
    session = AuthSession(session_id=session_id, user_id=user_id, email=email)
    request.app.state.auth_events.emit(AuthEvent.SIGNED_IN, session)
    identity = request.app.state.session_gate.identity_for(session)
    return Token(
        access_token=create_access_token(user_id, email, session_id, expires_at),
        token_type="bearer",
        role=identity.role.value
    )

def session_response(identity: Identity) -> SessionResponse:
    return SessionResponse(
        user_id=identity.user_id,
        email=identity.email,
        role=identity.role.value,
        can_access_dashboard=identity.can_access_dashboard,
        can_delete_posts=identity.can_delete_posts,
        can_manage_subadmins=identity.can_manage_subadmins
    )

@router.get("/admin-exists", response_model=AdminExistsResponse)
def check_admin_exists():
    """Whether public signup is still open."""
    with store_errors("Failed to check admin status"):
        return AdminExistsResponse(admin_exists=admin_exists())

@router.post("/signup", response_model=Token, status_code=201)
def signup(user: SignupRequest, request: Request):
    """Create the site's admin account. Closed as soon as an admin exists."""
    if admin_exists():
        raise HTTPException(status_code=400, detail="Admin already exists. Please login instead.")
    if get_user_by_email(user.email):
        raise HTTPException(status_code=400, detail="This email is already registered. Please login.")

    hashed = hash_password(user.password)
    with store_errors("An unexpected error occurred"):
        with get_db() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    "INSERT INTO users (email, username, password_hash, email_confirmed) VALUES (?, ?, ?, 1)",
                    (user.email, user.username, hashed)
                )
            except sqlite3.IntegrityError:
                raise HTTPException(status_code=400, detail="This email is already registered. Please login.")
            user_id = cursor.lastrowid
            cursor.execute("INSERT INTO user_roles (user_id, role) VALUES (?, 'admin')", (user_id,))
            conn.commit()
        logger.info(f"Admin account created for {user.email}")
        return start_session(request, user_id, user.email)

@router.post("/login", response_model=Token)
def login(login_data: LoginRequest, request: Request):
    user = get_user_by_email(login_data.email, include_password=True)
    if not user or not verify_password(login_data.password, user["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    with store_errors("An unexpected error occurred"):
        return start_session(request, user["id"], user["email"])

@router.post("/refresh", response_model=Token)
def refresh(request: Request, session: Optional[AuthSession] = Depends(get_current_session)):
    """Extend the current session and hand out a fresh token for it."""
    if session is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    expires_at = token_expiry()
    with store_errors("Failed to refresh session"):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("UPDATE auth_sessions SET expires_at = ? WHERE id = ?", (expires_at.isoformat(), session.session_id))
            conn.commit()
    request.app.state.auth_events.emit(AuthEvent.TOKEN_REFRESHED, session)
    identity = request.app.state.session_gate.identity_for(session)
    return Token(
        access_token=create_access_token(session.user_id, session.email, session.session_id, expires_at),
        token_type="bearer",
        role=identity.role.value
    )

@router.post("/logout")
def logout(request: Request, session: Optional[AuthSession] = Depends(get_current_session)):
    if session is None:
        return {"msg": "Already signed out"}
    with store_errors("Failed to sign out"):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM auth_sessions WHERE id = ?", (session.session_id,))
            conn.commit()
    request.app.state.auth_events.emit(AuthEvent.SIGNED_OUT, session)
    return {"msg": "Signed out"}

@router.get("/session", response_model=SessionResponse)
def get_session(identity: Identity = Depends(get_identity)):
    """Current identity projection; anonymous when there is no valid token."""
    return session_response(identity)
