"""
Idempotent schema bootstrap for the social interaction store.

The DDL is portable between PostgreSQL and SQLite: ids are TEXT, timestamps
are fixed-width UTC ISO-8601 TEXT, and every uniqueness rule the services rely
on is a real UNIQUE constraint.
"""

from sqlalchemy import text

from db.postgres_db import get_db_session
from utils.logger import get_logger

logger = get_logger(__name__)


SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        name TEXT,
        avatar_url TEXT,
        role TEXT NOT NULL DEFAULT 'USER' CHECK (role IN ('USER', 'ADMIN')),
        status TEXT NOT NULL DEFAULT 'ACTIVE' CHECK (status IN ('ACTIVE', 'BANNED')),
        profile_visibility TEXT NOT NULL DEFAULT 'public'
            CHECK (profile_visibility IN ('public', 'followers', 'private')),
        notification_preferences TEXT,
        created_at TEXT NOT NULL,
        deleted_at TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS auth_sessions (
        token TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        expires_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS posts (
        id TEXT PRIMARY KEY,
        author_id TEXT NOT NULL,
        title TEXT,
        likes_count INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        deleted_at TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS activities (
        id TEXT PRIMARY KEY,
        author_id TEXT NOT NULL,
        content TEXT,
        likes_count INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        deleted_at TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS comments (
        id TEXT PRIMARY KEY,
        author_id TEXT NOT NULL,
        post_id TEXT,
        activity_id TEXT,
        content TEXT,
        created_at TEXT NOT NULL,
        deleted_at TEXT,
        CHECK ((post_id IS NULL) <> (activity_id IS NULL))
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS follows (
        follower_id TEXT NOT NULL,
        following_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        UNIQUE (follower_id, following_id),
        CHECK (follower_id <> following_id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_follows_following_created ON follows(following_id, created_at, follower_id);",
    "CREATE INDEX IF NOT EXISTS idx_follows_follower_created ON follows(follower_id, created_at, following_id);",
    """
    CREATE TABLE IF NOT EXISTS likes (
        author_id TEXT NOT NULL,
        target_type TEXT NOT NULL CHECK (target_type IN ('post', 'activity')),
        target_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        UNIQUE (author_id, target_type, target_id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_likes_target_created ON likes(target_type, target_id, created_at, author_id);",
    """
    CREATE TABLE IF NOT EXISTS bookmarks (
        user_id TEXT NOT NULL,
        post_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        UNIQUE (user_id, post_id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_bookmarks_user_created ON bookmarks(user_id, created_at, post_id);",
    """
    CREATE TABLE IF NOT EXISTS notifications (
        id TEXT PRIMARY KEY,
        recipient_id TEXT NOT NULL,
        actor_id TEXT NOT NULL,
        type TEXT NOT NULL CHECK (type IN ('LIKE', 'COMMENT', 'FOLLOW', 'SYSTEM')),
        post_id TEXT,
        activity_id TEXT,
        follower_id TEXT,
        comment_id TEXT,
        created_at TEXT NOT NULL,
        read_at TEXT,
        CHECK (
            (CASE WHEN post_id IS NULL THEN 0 ELSE 1 END)
            + (CASE WHEN activity_id IS NULL THEN 0 ELSE 1 END)
            + (CASE WHEN follower_id IS NULL THEN 0 ELSE 1 END) = 1
        ),
        CHECK (comment_id IS NULL OR type = 'COMMENT')
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_notifications_recipient_created ON notifications(recipient_id, created_at, id);",
    "CREATE INDEX IF NOT EXISTS idx_notifications_recipient_unread ON notifications(recipient_id, read_at);",
    """
    CREATE TABLE IF NOT EXISTS rate_limit_windows (
        bucket_key TEXT PRIMARY KEY,
        hit_count INTEGER NOT NULL,
        reset_at_ms BIGINT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS audit_events (
        id TEXT PRIMARY KEY,
        action TEXT NOT NULL,
        actor_id TEXT,
        resource TEXT,
        success INTEGER NOT NULL,
        error_code TEXT,
        details TEXT,
        created_at TEXT NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_audit_events_action ON audit_events(action, created_at);",
]


def ensure_schema() -> None:
    """Create all tables and indexes if they do not exist yet."""
    with get_db_session() as session:
        for statement in SCHEMA_STATEMENTS:
            session.execute(text(statement))
    logger.info({"event": "schema_ensured", "tables": 11})
