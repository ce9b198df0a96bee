from pydantic import BaseModel, validator
from datetime import datetime
from schemas.posts import is_valid_url

class SocialLinkDraft(BaseModel):
    platform: str
    url: str
    display_order: int = 0

    @validator('platform')
    def validate_platform(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError('Platform is required')
        if len(v) > 50:
            raise ValueError('Platform name too long')
        return v

    @validator('url')
    def validate_url(cls, v):
        v = (v or "").strip()
        if not is_valid_url(v):
            raise ValueError('Invalid link URL')
        return v

class SocialLinkResponse(BaseModel):
    id: int
    platform: str
    url: str
    image_url: str
    is_active: bool
    display_order: int
    created_at: datetime
