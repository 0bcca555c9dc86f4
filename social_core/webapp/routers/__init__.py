"""
API routers for the webapp.
"""

from . import bookmarks, follows, health, likes, notifications

__all__ = ["bookmarks", "follows", "health", "likes", "notifications"]
