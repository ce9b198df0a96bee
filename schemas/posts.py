from pydantic import BaseModel, validator
from typing import List, Optional
from datetime import datetime
from urllib.parse import urlsplit
from embeds import EmbedView

def is_valid_url(value: str) -> bool:
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc) and " " not in value

class PostDraft(BaseModel):
    title: str
    thumbnail_url: Optional[str] = None
    video_links: List[str] = []
    additional_images: List[str] = []

    @validator('title')
    def validate_title(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError('Title is required')
        if len(v) > 200:
            raise ValueError('Title too long')
        return v

    @validator('thumbnail_url')
    def validate_thumbnail_url(cls, v):
        if v is not None:
            v = v.strip() or None
        return v

    @validator('video_links')
    def validate_video_links(cls, v):
        # Blank rows in the form are dropped, not rejected
        links = [link.strip() for link in v if link and link.strip()]
        for link in links:
            if not is_valid_url(link):
                raise ValueError('Invalid video URL')
        return links

    @validator('additional_images')
    def validate_additional_images(cls, v):
        return [url.strip() for url in v if url and url.strip()]

class BackupPost(BaseModel):
    """One entry of a backup file; ids, slugs and timestamps are ignored."""
    title: str
    thumbnail_url: str
    video_links: List[str] = []
    additional_images: List[str] = []

    @validator('title')
    def validate_title(cls, v):
        if not v or len(v) > 200:
            raise ValueError('Invalid title')
        return v

    @validator('thumbnail_url')
    def validate_thumbnail_url(cls, v):
        if not v.strip():
            raise ValueError('Missing thumbnail')
        return v

    @validator('video_links', 'additional_images', pre=True)
    def default_empty_list(cls, v):
        return [] if v is None else v

class PostResponse(BaseModel):
    id: int
    title: str
    slug: str
    thumbnail_url: str
    additional_images: List[str] = []
    video_links: List[str] = []
    created_at: datetime
    updated_at: datetime

class PostPage(BaseModel):
    items: List[PostResponse]
    page: int
    page_size: int
    total: int
    total_pages: int

class PostCard(BaseModel):
    id: int
    title: str
    thumbnail_url: str
    slug: str
    url: str

class SocialBanner(BaseModel):
    id: int
    platform: str
    url: str
    image_url: str
    alt: str

class PostDetailResponse(BaseModel):
    post: PostResponse
    embeds: List[EmbedView]
    additional_images: List[str]
    must_watch: List[PostCard]
    social_banners: List[SocialBanner]

class FeedResponse(BaseModel):
    posts: List[PostCard]
    page: int
    total_pages: int
    has_previous: bool
    has_next: bool
    previous_page_path: Optional[str] = None
    next_page_path: Optional[str] = None
    social_banners: List[SocialBanner]
    message: Optional[str] = None
