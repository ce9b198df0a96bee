import re
import sqlite3
import logging
from contextlib import contextmanager
from config import DATABASE_PATH
from database_schemas import (
    USERS_TABLE_SCHEMA,
    AUTH_SESSIONS_TABLE_SCHEMA,
    USER_ROLES_TABLE_SCHEMA,
    POSTS_TABLE_SCHEMA,
    SOCIAL_LINKS_TABLE_SCHEMA
)

logger = logging.getLogger(__name__)

DB_NAME = DATABASE_PATH

MAX_SLUG_LENGTH = 80

@contextmanager
def get_db():
    conn = sqlite3.connect(DB_NAME)
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()

def init_db():
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(USERS_TABLE_SCHEMA)
        cursor.execute(AUTH_SESSIONS_TABLE_SCHEMA)
        cursor.execute(USER_ROLES_TABLE_SCHEMA)
        cursor.execute(POSTS_TABLE_SCHEMA)
        cursor.execute(SOCIAL_LINKS_TABLE_SCHEMA)
        conn.commit()
    logger.info("Database ready at %s", DB_NAME)

def slugify(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug[:MAX_SLUG_LENGTH].rstrip("-") or "post"

def generate_unique_slug(cursor, title: str) -> str:
    """Derive a slug from the title, suffixing -2, -3, ... until it is unused."""
    base = slugify(title)
    cursor.execute("SELECT slug FROM posts WHERE slug = ? OR slug LIKE ?", (base, f"{base}-%"))
    taken = {row[0] for row in cursor.fetchall()}
    if base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"

if __name__ == "__main__":
    init_db()
