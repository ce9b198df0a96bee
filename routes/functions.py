"""Privileged account endpoints.

Only an authenticated admin may call these. They always answer with JSON:
a success payload, or `{"error": message}` with HTTP 400. Preflight requests get
an empty body with the CORS headers.
"""
import json
import sqlite3
import logging
from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from database import get_db
from auth import hash_password
from schemas.auth import validate_email_address, validate_password_strength
from utils.route_helpers import get_user_role, session_from_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", tags=["functions"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


class FunctionError(Exception):
    pass


def preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)

def ok(payload: dict) -> JSONResponse:
    return JSONResponse(payload, status_code=200, headers=CORS_HEADERS)

def failed(message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=400, headers=CORS_HEADERS)

def require_admin_caller(request: Request, message: str) -> int:
    """Resolve the bearer token and re-check the admin role in the store."""
    auth_header = request.headers.get("Authorization", "")
    token = auth_header[len("Bearer "):] if auth_header.startswith("Bearer ") else None
    session = session_from_token(token, request.app.state.session_gate)
    if session is None:
        raise FunctionError("Unauthorized")
    if get_user_role(session.user_id) != "admin":
        raise FunctionError(message)
    return session.user_id

async def read_json(request: Request) -> dict:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise FunctionError("Invalid JSON body")
    if not isinstance(body, dict):
        raise FunctionError("Invalid JSON body")
    return body

def read_credentials(body: dict):
    email = body.get("email")
    password = body.get("password")
    if not isinstance(email, str) or not isinstance(password, str) or not email.strip() or not password:
        raise FunctionError("Email and password are required")
    try:
        return validate_email_address(email), validate_password_strength(password)
    except ValueError as e:
        raise FunctionError(str(e))

def create_subadmin_account(creator_id: int, email: str, password: str) -> dict:
    with get_db() as conn:
        cursor = conn.cursor()
        try:
            cursor.execute(
                "INSERT INTO users (email, password_hash, email_confirmed) VALUES (?, ?, 1)",
                (email, hash_password(password))
            )
        except sqlite3.IntegrityError:
            raise FunctionError("A user with this email address has already been registered")
        user_id = cursor.lastrowid
        cursor.execute(
            "INSERT INTO user_roles (user_id, role, created_by) VALUES (?, 'subadmin', ?)",
            (user_id, creator_id)
        )
        conn.commit()
    return {"id": user_id, "email": email}

def lookup_email(cursor, user_id: int) -> str:
    try:
        cursor.execute("SELECT email FROM users WHERE id = ?", (user_id,))
        row = cursor.fetchone()
    except sqlite3.Error as e:
        logger.warning(f"Email lookup failed for user {user_id}: {e}")
        return "Unknown"
    return row[0] if row else "Unknown"

def list_subadmin_rows() -> list:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            SELECT id, user_id, role, created_at FROM user_roles
            WHERE role = 'subadmin'
            ORDER BY created_at DESC, id DESC
        """)
        rows = cursor.fetchall()
        return [
            {"id": r[0], "user_id": r[1], "role": r[2], "created_at": r[3], "email": lookup_email(cursor, r[1])}
            for r in rows
        ]

@router.options("/create-subadmin")
def create_subadmin_preflight():
    return preflight()

@router.post("/create-subadmin")
async def create_subadmin(request: Request):
    try:
        creator_id = require_admin_caller(request, "Only admins can create sub-admins")
        body = await read_json(request)
        email, password = read_credentials(body)
        user = create_subadmin_account(creator_id, email, password)
    except FunctionError as e:
        logger.error(f"create-subadmin failed: {e}")
        return failed(str(e))
    except sqlite3.Error as e:
        logger.exception(f"create-subadmin failed: {e}")
        return failed("Failed to create sub-admin")
    logger.info(f"Admin {creator_id} created sub-admin {user['email']}")
    return ok({"success": True, "user": user})

@router.options("/list-subadmins")
def list_subadmins_preflight():
    return preflight()

@router.api_route("/list-subadmins", methods=["GET", "POST"])
def list_subadmins(request: Request):
    try:
        require_admin_caller(request, "Only admins can view sub-admins")
        subadmins = list_subadmin_rows()
    except FunctionError as e:
        logger.error(f"list-subadmins failed: {e}")
        return failed(str(e))
    except sqlite3.Error as e:
        logger.exception(f"list-subadmins failed: {e}")
        return failed("Failed to list sub-admins")
    return ok({"subAdmins": subadmins})
