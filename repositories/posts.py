"""Post storage: paginated reads, validated writes, and the JSON backup cycle."""
import json
import math
import random
import sqlite3
import logging
from datetime import datetime, timezone
from typing import List, Optional
from fastapi import HTTPException
from pydantic import ValidationError
from database import get_db, generate_unique_slug
from schemas.posts import BackupPost, PostDraft, PostResponse, PostPage
from utils.route_helpers import ensure_role, store_errors, STAFF_ROLES

logger = logging.getLogger(__name__)

PAGE_SIZE = 12
BACKUP_VERSION = "1.0"

POST_COLUMNS = "id, title, slug, thumbnail_url, additional_images, video_links, created_at, updated_at"

def row_to_post(row) -> PostResponse:
    return PostResponse(
        id=row[0], title=row[1], slug=row[2], thumbnail_url=row[3],
        additional_images=json.loads(row[4] or "[]"),
        video_links=json.loads(row[5] or "[]"),
        created_at=row[6], updated_at=row[7]
    )

def total_pages_for(total: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(total / page_size)

def clamp_page(current_page: int, total: int, page_size: int = PAGE_SIZE) -> int:
    """Keep the current page if it still has posts, otherwise fall back to the last one."""
    total_pages = total_pages_for(total, page_size)
    if current_page > total_pages:
        return max(1, total_pages)
    return max(1, current_page)

def count_posts() -> int:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT COUNT(*) FROM posts")
        return cursor.fetchone()[0]

def list_posts(page: int = 1, page_size: int = PAGE_SIZE) -> PostPage:
    if page < 1:
        raise HTTPException(status_code=400, detail="Page must be 1 or greater")
    rows = []
    with store_errors("Error fetching posts"):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM posts")
            total = cursor.fetchone()[0]
            # Past the last page there is nothing to fetch, and huge offsets overflow sqlite
            if page <= max(1, total_pages_for(total, page_size)):
                cursor.execute(
                    f"SELECT {POST_COLUMNS} FROM posts ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                    (page_size, (page - 1) * page_size)
                )
                rows = cursor.fetchall()
    return PostPage(
        items=[row_to_post(r) for r in rows],
        page=page,
        page_size=page_size,
        total=total,
        total_pages=total_pages_for(total, page_size)
    )

def get_post(post_id: int) -> Optional[PostResponse]:
    with store_errors("Error fetching post"):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT {POST_COLUMNS} FROM posts WHERE id = ?", (post_id,))
            row = cursor.fetchone()
    return row_to_post(row) if row else None

def get_post_by_slug(slug: str) -> Optional[PostResponse]:
    with store_errors("Error fetching post"):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT {POST_COLUMNS} FROM posts WHERE slug = ?", (slug,))
            row = cursor.fetchone()
    return row_to_post(row) if row else None

def get_random_posts(exclude_slug: str, limit: int = 3) -> List[PostResponse]:
    """A window of other posts starting at a random offset."""
    with store_errors("Error fetching sidebar posts"):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM posts WHERE slug != ?", (exclude_slug,))
            count = cursor.fetchone()[0]
            offset = random.randint(0, max(0, count - limit - 1)) if count > limit else 0
            cursor.execute(
                f"SELECT {POST_COLUMNS} FROM posts WHERE slug != ? ORDER BY id LIMIT ? OFFSET ?",
                (exclude_slug, limit, offset)
            )
            rows = cursor.fetchall()
    return [row_to_post(r) for r in rows]

def create_post(draft: PostDraft, actor_id: int) -> PostResponse:
    if not draft.thumbnail_url:
        raise HTTPException(status_code=400, detail="Please provide a thumbnail image (upload or URL)")
    ensure_role(actor_id, STAFF_ROLES, "Admin or Sub-Admin access required to create posts")
    with store_errors("Failed to save post"):
        with get_db() as conn:
            cursor = conn.cursor()
            slug = generate_unique_slug(cursor, draft.title)
            cursor.execute(
                "INSERT INTO posts (title, slug, thumbnail_url, additional_images, video_links) VALUES (?, ?, ?, ?, ?)",
                (draft.title, slug, draft.thumbnail_url,
                 json.dumps(draft.additional_images), json.dumps(draft.video_links))
            )
            post_id = cursor.lastrowid
            conn.commit()
    logger.info(f"User {actor_id} created post {post_id} ({slug})")
    return get_post(post_id)

def update_post(post_id: int, draft: PostDraft, actor_id: int) -> PostResponse:
    ensure_role(actor_id, STAFF_ROLES, "Admin or Sub-Admin access required to edit posts")
    with store_errors("Failed to save post"):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT thumbnail_url FROM posts WHERE id = ?", (post_id,))
            row = cursor.fetchone()
            if not row:
                raise HTTPException(status_code=404, detail="Post not found")
            # Keep the stored thumbnail unless a new one was resolved
            thumbnail_url = draft.thumbnail_url or row[0]
            cursor.execute(
                """UPDATE posts SET title = ?, thumbnail_url = ?, additional_images = ?, video_links = ?,
                   updated_at = strftime('%Y-%m-%d %H:%M:%f', 'now') WHERE id = ?""",
                (draft.title, thumbnail_url, json.dumps(draft.additional_images),
                 json.dumps(draft.video_links), post_id)
            )
            conn.commit()
    logger.info(f"User {actor_id} updated post {post_id}")
    return get_post(post_id)

def delete_post(post_id: int, actor_id: int):
    ensure_role(actor_id, ("admin",), "Only admins can delete posts")
    with store_errors("Failed to delete post"):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM posts WHERE id = ?", (post_id,))
            deleted = cursor.rowcount
            conn.commit()
    if not deleted:
        raise HTTPException(status_code=404, detail="Post not found")
    logger.info(f"User {actor_id} deleted post {post_id}")

def export_posts() -> dict:
    with store_errors("Failed to export backup"):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT {POST_COLUMNS} FROM posts ORDER BY created_at DESC, id DESC")
            rows = cursor.fetchall()
    return {
        "version": BACKUP_VERSION,
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "posts": [row_to_post(r).model_dump(mode="json") for r in rows]
    }

def parse_backup(document) -> List[BackupPost]:
    """Check every entry before anything is written; one bad entry rejects the file."""
    if not isinstance(document, dict) or not isinstance(document.get("posts"), list):
        raise HTTPException(status_code=400, detail="Invalid backup file format")
    entries = []
    for post in document["posts"]:
        if not isinstance(post, dict):
            raise HTTPException(status_code=400, detail="Invalid backup file format")
        try:
            entries.append(BackupPost(**post))
        except ValidationError as e:
            logger.warning(f"Rejected backup entry: {e.errors()[0].get('msg')}")
            raise HTTPException(status_code=400, detail="Invalid backup file format")
    return entries

def import_posts(document, actor_id: int) -> int:
    """Insert every post of a backup document in one transaction; slugs are regenerated."""
    entries = parse_backup(document)
    ensure_role(actor_id, STAFF_ROLES, "Admin or Sub-Admin access required to import posts")
    with store_errors("Failed to import backup"):
        with get_db() as conn:
            cursor = conn.cursor()
            try:
                # Backups are newest first; insert oldest first so the feed order survives
                for post in reversed(entries):
                    slug = generate_unique_slug(cursor, post.title)
                    cursor.execute(
                        "INSERT INTO posts (title, slug, thumbnail_url, additional_images, video_links) VALUES (?, ?, ?, ?, ?)",
                        (post.title, slug, post.thumbnail_url,
                         json.dumps(post.additional_images), json.dumps(post.video_links))
                    )
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise
    logger.info(f"User {actor_id} imported {len(entries)} posts")
    return len(entries)
