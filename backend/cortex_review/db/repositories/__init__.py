"""Database repositories."""
from cortex_review.db.repositories.session import SessionStore
from cortex_review.db.repositories.validation import ValidationRepository

__all__ = [
    "SessionStore",
    "ValidationRepository",
]
