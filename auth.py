from passlib.context import CryptContext
from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
from config import SECRET_KEY, ACCESS_TOKEN_EXPIRE_MINUTES

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def token_expiry(expires_delta: timedelta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)) -> datetime:
    return datetime.now(timezone.utc) + expires_delta

def create_access_token(user_id: int, email: str, session_id: str, expires_at: datetime = None) -> str:
    """Issue a bearer token bound to a server-side session row."""
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "sid": session_id,
        "exp": expires_at or token_expiry(),
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def decode_access_token(token: str):
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return payload
    except JWTError:
        return None

def verify_token(token: str):
    """Verify and decode JWT token, return payload if it names a user and a session, None otherwise"""
    payload = decode_access_token(token)
    if not payload or not payload.get("sub") or not payload.get("sid"):
        return None
    return payload
