import json
import logging
from datetime import datetime, timezone
from typing import List, Optional
from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Form, Query, Request
from fastapi.responses import JSONResponse
from database import get_db
from session_gate import Identity
from schemas.posts import PostDraft, PostResponse
from schemas.social_links import SocialLinkDraft, SocialLinkResponse
from schemas.admin import (
    DashboardResponse, PostFormResponse, VideoLinkPreviewRequest, PostMutationResponse,
    PostDeleteResponse, ImportResponse, SubAdminResponse
)
from embeds import EmbedView
from file_utils import resolve_image
from admin_workflow import (
    PostFormState, additional_image_sources, banner_source, parse_json_list,
    preview_video_links, resolve_additional_images, thumbnail_source
)
from repositories import posts as post_repo
from repositories import social_links as social_link_repo
from routes.functions import list_subadmin_rows
from utils.route_helpers import (
    ensure_role, require_admin, require_staff, store_errors, validation_errors
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

# Dashboard

@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(page: int = Query(1, ge=1), identity: Identity = Depends(require_staff)):
    """Everything the dashboard renders; admin-only sections are left out for sub-admins."""
    post_page = post_repo.list_posts(page, post_repo.PAGE_SIZE)
    subadmins = None
    if identity.can_manage_subadmins:
        with store_errors("Error fetching sub-admins"):
            subadmins = [SubAdminResponse(**row) for row in list_subadmin_rows()]
    return DashboardResponse(
        role=identity.role.value,
        can_delete_posts=identity.can_delete_posts,
        can_manage_subadmins=identity.can_manage_subadmins,
        posts=post_page.items,
        page=post_page.page,
        page_size=post_page.page_size,
        total_posts=post_page.total,
        total_pages=post_page.total_pages,
        social_links=social_link_repo.list_social_links(),
        subadmins=subadmins
    )

# Post form

@router.get("/posts/new/form", response_model=PostFormResponse)
def new_post_form(identity: Identity = Depends(require_staff)):
    return PostFormState.blank().to_response()

@router.get("/posts/{post_id}/form", response_model=PostFormResponse)
def edit_post_form(post_id: int, identity: Identity = Depends(require_staff)):
    post = post_repo.get_post(post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return PostFormState.load(post).to_response()

@router.post("/posts/preview", response_model=List[EmbedView])
def preview_links(req: VideoLinkPreviewRequest, identity: Identity = Depends(require_staff)):
    return preview_video_links(req.video_links)

def build_post_draft(title: str, video_links: Optional[str]) -> PostDraft:
    with validation_errors():
        links = parse_json_list(video_links, "Invalid video URL")
        if not all(isinstance(link, str) for link in links):
            raise ValueError("Invalid video URL")
        return PostDraft(title=title, video_links=links)

def save_post(
    post_id: Optional[int],
    title: str,
    video_links: Optional[str],
    thumbnail: Optional[UploadFile],
    thumbnail_url: Optional[str],
    additional_images: Optional[str],
    additional_files: Optional[List[UploadFile]],
    identity: Identity
) -> PostResponse:
    """Validate everything, then upload images, then write the post."""
    draft = build_post_draft(title, video_links)
    with validation_errors():
        thumb = thumbnail_source(thumbnail, thumbnail_url)
        extras = additional_image_sources(additional_images, additional_files)
    if post_id is None and thumb is None:
        raise HTTPException(status_code=400, detail="Please provide a thumbnail image (upload or URL)")
    if post_id is not None and not post_repo.get_post(post_id):
        raise HTTPException(status_code=404, detail="Post not found")
    with store_errors("Failed to upload thumbnail"):
        resolved_thumbnail = resolve_image(thumb)
    draft = draft.model_copy(update={
        "thumbnail_url": resolved_thumbnail,
        "additional_images": resolve_additional_images(extras)
    })
    if post_id is None:
        return post_repo.create_post(draft, identity.user_id)
    return post_repo.update_post(post_id, draft, identity.user_id)

@router.post("/posts", response_model=PostMutationResponse, status_code=201)
def create_post(
    title: str = Form(""),
    video_links: Optional[str] = Form("[]"),  # JSON list, order preserved
    thumbnail: Optional[UploadFile] = File(None),
    thumbnail_url: Optional[str] = Form(None),
    additional_images: Optional[str] = Form("[]"),  # JSON manifest
    additional_files: Optional[List[UploadFile]] = File(None),
    identity: Identity = Depends(require_staff)
):
    post = save_post(None, title, video_links, thumbnail, thumbnail_url, additional_images, additional_files, identity)
    return PostMutationResponse(msg="Post created successfully!", post=post, page=1)

@router.put("/posts/{post_id}", response_model=PostMutationResponse)
def update_post(
    post_id: int,
    title: str = Form(""),
    video_links: Optional[str] = Form("[]"),
    thumbnail: Optional[UploadFile] = File(None),
    thumbnail_url: Optional[str] = Form(None),
    additional_images: Optional[str] = Form("[]"),
    additional_files: Optional[List[UploadFile]] = File(None),
    identity: Identity = Depends(require_staff)
):
    post = save_post(post_id, title, video_links, thumbnail, thumbnail_url, additional_images, additional_files, identity)
    return PostMutationResponse(msg="Post updated successfully!", post=post, page=1)

@router.delete("/posts/{post_id}", response_model=PostDeleteResponse)
def delete_post(post_id: int, page: int = Query(1, ge=1), identity: Identity = Depends(require_staff)):
    """Admin-only; the store re-checks the role, so a sub-admin is refused even if the button leaks."""
    post_repo.delete_post(post_id, identity.user_id)
    total = post_repo.count_posts()
    return PostDeleteResponse(
        msg="Post deleted successfully!",
        page=post_repo.clamp_page(page, total),
        total_pages=post_repo.total_pages_for(total)
    )

# Backup

@router.get("/backup")
def export_backup(identity: Identity = Depends(require_staff)):
    backup = post_repo.export_posts()
    filename = f"posts-backup-{datetime.now(timezone.utc).date().isoformat()}.json"
    return JSONResponse(
        backup,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )

@router.post("/backup/import", response_model=ImportResponse)
def import_backup(file: UploadFile = File(...), identity: Identity = Depends(require_staff)):
    try:
        document = json.loads(file.file.read())
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Invalid backup file format")
    imported = post_repo.import_posts(document, identity.user_id)
    return ImportResponse(msg=f"Successfully imported {imported} posts!", imported=imported, page=1)

# Social links

@router.get("/social-links", response_model=List[SocialLinkResponse])
def list_social_links(identity: Identity = Depends(require_staff)):
    return social_link_repo.list_social_links()

def social_link_draft(platform: str, url: str, display_order: int) -> SocialLinkDraft:
    with validation_errors():
        return SocialLinkDraft(platform=platform, url=url, display_order=display_order)

def resolve_banner(image: Optional[UploadFile], image_url: Optional[str]) -> Optional[str]:
    with validation_errors():
        source = banner_source(image, image_url)
    with store_errors("Failed to save social link"):
        return resolve_image(source)

@router.post("/social-links", response_model=SocialLinkResponse, status_code=201)
def create_social_link(
    platform: str = Form(""),
    url: str = Form(""),
    display_order: int = Form(0),
    image: Optional[UploadFile] = File(None),
    image_url: Optional[str] = Form(None),
    identity: Identity = Depends(require_staff)
):
    draft = social_link_draft(platform, url, display_order)
    return social_link_repo.create_social_link(draft, resolve_banner(image, image_url), identity.user_id)

@router.put("/social-links/{link_id}", response_model=SocialLinkResponse)
def update_social_link(
    link_id: int,
    platform: str = Form(""),
    url: str = Form(""),
    display_order: int = Form(0),
    image: Optional[UploadFile] = File(None),
    image_url: Optional[str] = Form(None),
    identity: Identity = Depends(require_staff)
):
    draft = social_link_draft(platform, url, display_order)
    return social_link_repo.update_social_link(link_id, draft, resolve_banner(image, image_url), identity.user_id)

@router.post("/social-links/{link_id}/toggle")
def toggle_social_link(link_id: int, identity: Identity = Depends(require_staff)):
    is_active = social_link_repo.toggle_social_link(link_id, identity.user_id)
    state = "activated" if is_active else "deactivated"
    return {"msg": f"Social link {state} successfully!", "is_active": is_active}

@router.delete("/social-links/{link_id}")
def delete_social_link(link_id: int, identity: Identity = Depends(require_staff)):
    social_link_repo.delete_social_link(link_id, identity.user_id)
    return {"msg": "Social link deleted successfully!"}

# Sub-admins

@router.delete("/subadmins/{user_id}")
def remove_subadmin(user_id: int, request: Request, identity: Identity = Depends(require_admin)):
    """Drop a sub-admin's role row. The admin's own row is never touched."""
    ensure_role(identity.user_id, ("admin",), "Only admins can remove sub-admins")
    with store_errors("Failed to remove sub-admin"):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM user_roles WHERE user_id = ? AND role = 'subadmin'", (user_id,))
            removed = cursor.rowcount
            conn.commit()
    if not removed:
        raise HTTPException(status_code=404, detail="Sub-admin not found")
    request.app.state.session_gate.forget_user(user_id)
    logger.info(f"Admin {identity.user_id} removed sub-admin {user_id}")
    return {"msg": "Sub-admin removed successfully"}
