"""Database ORM models."""
from cortex_review.db.models.kv_entry import KeyValueORM

__all__ = [
    "KeyValueORM",
]
