from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from embeds import EmbedView
from schemas.posts import PostResponse
from schemas.social_links import SocialLinkResponse

class SubAdminResponse(BaseModel):
    id: int
    user_id: int
    role: str
    created_at: datetime
    email: str = "Unknown"

class DashboardResponse(BaseModel):
    role: str
    can_delete_posts: bool
    can_manage_subadmins: bool
    posts: List[PostResponse]
    page: int
    page_size: int
    total_posts: int
    total_pages: int
    social_links: List[SocialLinkResponse]
    subadmins: Optional[List[SubAdminResponse]] = None

class VideoLinkPreviewRequest(BaseModel):
    video_links: List[str] = []

class PostFormResponse(BaseModel):
    mode: str
    editing_post_id: Optional[int] = None
    submit_label: str
    scroll_to_top: bool
    title: str
    thumbnail_url: str
    additional_images: List[str]
    video_links: List[str]
    previews: List[EmbedView]

class PostMutationResponse(BaseModel):
    msg: str
    post: PostResponse
    page: int = 1

class PostDeleteResponse(BaseModel):
    msg: str
    page: int
    total_pages: int

class ImportResponse(BaseModel):
    msg: str
    imported: int
    page: int = 1
