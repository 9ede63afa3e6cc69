"""Session services."""
from cortex_review.services.session.manager import SessionManager
from cortex_review.services.session.view import SessionView

__all__ = [
    "SessionManager",
    "SessionView",
]
