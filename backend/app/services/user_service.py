"""
Posts API Backend: User Service
================================

What:  User records created on first Google sign-in.
How:   ResourceService over the "Users" kind, unpaged. A user is identified
       externally by the `sub` claim of their ID token, stored as userID.

Deduplication:
    find_by_subject() is a linear scan over every user. That is fine for the
    handful of accounts this service sees; a larger deployment would keep a
    second entity keyed by subject instead, with the same create-if-absent
    contract.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from app.models.entities import User
from app.services.resource_service import ResourceService

logger = logging.getLogger(__name__)


class UserService(ResourceService[User]):
    model = User
    resource = "user"
    REQUIRED_FIELDS = ("firstName", "lastName", "userID")
    PAGE_SIZE = None

    async def find_by_subject(self, subject: str) -> Optional[User]:
        page = await self.list()
        for user in page.records:
            if user.user_id == subject:
                return user
        return None

    async def ensure_user(self, claims: Dict[str, Any]) -> Tuple[User, bool]:
        """
        Return the user for a verified token's claims, creating it if absent.

        Returns:
            (user, created) where created is True on first sign-in.
        """
        subject = claims["sub"]
        existing = await self.find_by_subject(subject)
        if existing is not None:
            return existing, False

        # Google omits name claims when the profile scope was not granted
        user = await self.create({
            "firstName": claims.get("given_name") or claims.get("name") or "",
            "lastName": claims.get("family_name") or "",
            "userID": subject,
        })
        logger.info("Registered new user %s on first sign-in", user.id)
        return user, True
