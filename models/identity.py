"""
Caller identity, resolved once at the API boundary.
"""

from typing import Optional

from models.base import BaseSchema


class Identity(BaseSchema):
    """Verified user behind a privileged request."""

    id: str
    email: Optional[str] = None

    @property
    def label(self) -> str:
        """Name written into upstream audit strings."""
        return self.email or self.id
