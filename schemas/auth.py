import re
from pydantic import BaseModel, validator
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

def validate_email_address(v: str) -> str:
    v = (v or "").strip()
    if not EMAIL_PATTERN.match(v):
        raise ValueError('Invalid email address')
    if len(v) > 255:
        raise ValueError('Email too long')
    return v.lower()

def validate_password_strength(v: str) -> str:
    if len(v or "") < 6:
        raise ValueError('Password must be at least 6 characters')
    if len(v) > 100:
        raise ValueError('Password too long')
    return v

class SignupRequest(BaseModel):
    email: str
    password: str
    username: Optional[str] = None

    @validator('email')
    def validate_email(cls, v):
        return validate_email_address(v)

    @validator('password')
    def validate_password(cls, v):
        return validate_password_strength(v)

    @validator('username')
    def validate_username(cls, v):
        if v is None:
            return v
        v = v.strip()
        if len(v) < 3:
            raise ValueError('Username must be at least 3 characters')
        if len(v) > 50:
            raise ValueError('Username too long')
        return v

class LoginRequest(BaseModel):
    email: str
    password: str

    @validator('email')
    def validate_email(cls, v):
        return validate_email_address(v)

class Token(BaseModel):
    access_token: str
    token_type: str
    role: str

class SessionResponse(BaseModel):
    user_id: Optional[int] = None
    email: Optional[str] = None
    role: str
    can_access_dashboard: bool
    can_delete_posts: bool
    can_manage_subadmins: bool

class AdminExistsResponse(BaseModel):
    admin_exists: bool
