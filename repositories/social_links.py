import logging
from typing import List, Optional
from fastapi import HTTPException
from database import get_db
from schemas.social_links import SocialLinkDraft, SocialLinkResponse
from utils.route_helpers import ensure_role, store_errors, STAFF_ROLES

logger = logging.getLogger(__name__)

SOCIAL_LINK_COLUMNS = "id, platform, url, image_url, is_active, display_order, created_at"

# Equal display_order values fall back to creation order
ORDERING = "display_order ASC, created_at ASC, id ASC"

def row_to_social_link(row) -> SocialLinkResponse:
    return SocialLinkResponse(
        id=row[0], platform=row[1], url=row[2], image_url=row[3],
        is_active=bool(row[4]), display_order=row[5], created_at=row[6]
    )

def list_social_links(active_only: bool = False) -> List[SocialLinkResponse]:
    where = "WHERE is_active = 1" if active_only else ""
    with store_errors("Error fetching social links"):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT {SOCIAL_LINK_COLUMNS} FROM social_links {where} ORDER BY {ORDERING}")
            rows = cursor.fetchall()
    return [row_to_social_link(r) for r in rows]

def get_social_link(link_id: int) -> Optional[SocialLinkResponse]:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(f"SELECT {SOCIAL_LINK_COLUMNS} FROM social_links WHERE id = ?", (link_id,))
        row = cursor.fetchone()
    return row_to_social_link(row) if row else None

def require_image(image_url: Optional[str]) -> str:
    if not image_url or not image_url.strip():
        raise HTTPException(status_code=400, detail="Please provide an image")
    return image_url.strip()

def create_social_link(draft: SocialLinkDraft, image_url: Optional[str], actor_id: int) -> SocialLinkResponse:
    image_url = require_image(image_url)
    ensure_role(actor_id, STAFF_ROLES, "Admin or Sub-Admin access required to manage social links")
    with store_errors("Failed to save social link"):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO social_links (platform, url, image_url, display_order) VALUES (?, ?, ?, ?)",
                (draft.platform, draft.url, image_url, draft.display_order)
            )
            link_id = cursor.lastrowid
            conn.commit()
        link = get_social_link(link_id)
    logger.info(f"User {actor_id} created social link {link_id} ({draft.platform})")
    return link

def update_social_link(link_id: int, draft: SocialLinkDraft, image_url: Optional[str], actor_id: int) -> SocialLinkResponse:
    image_url = require_image(image_url)
    ensure_role(actor_id, STAFF_ROLES, "Admin or Sub-Admin access required to manage social links")
    with store_errors("Failed to save social link"):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE social_links SET platform = ?, url = ?, image_url = ?, display_order = ? WHERE id = ?",
                (draft.platform, draft.url, image_url, draft.display_order, link_id)
            )
            updated = cursor.rowcount
            conn.commit()
        if not updated:
            raise HTTPException(status_code=404, detail="Social link not found")
        link = get_social_link(link_id)
    logger.info(f"User {actor_id} updated social link {link_id}")
    return link

def toggle_social_link(link_id: int, actor_id: int) -> bool:
    """Flip is_active and return the new value."""
    ensure_role(actor_id, STAFF_ROLES, "Admin or Sub-Admin access required to manage social links")
    with store_errors("Failed to update social link"):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("UPDATE social_links SET is_active = NOT is_active WHERE id = ?", (link_id,))
            if not cursor.rowcount:
                raise HTTPException(status_code=404, detail="Social link not found")
            cursor.execute("SELECT is_active FROM social_links WHERE id = ?", (link_id,))
            is_active = bool(cursor.fetchone()[0])
            conn.commit()
    logger.info(f"User {actor_id} set social link {link_id} active={is_active}")
    return is_active

def delete_social_link(link_id: int, actor_id: int):
    ensure_role(actor_id, STAFF_ROLES, "Admin or Sub-Admin access required to manage social links")
    with store_errors("Failed to delete social link"):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM social_links WHERE id = ?", (link_id,))
            deleted = cursor.rowcount
            conn.commit()
    if not deleted:
        raise HTTPException(status_code=404, detail="Social link not found")
    logger.info(f"User {actor_id} deleted social link {link_id}")
