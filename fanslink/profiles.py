"""
Profile lookups and account utilities: public profile resolution, usernames,
theme fields, subscriptions and templates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Iterable, Optional

from fanslink.db import DbClient
from fanslink.errors import DocumentNotFoundError, UsernameTakenError
from fanslink.types import PublicProfile, Subscription, SubscriptionStatus

logger = logging.getLogger(__name__)

PROFILE_FIELDS = frozenset({"background", "color", "photoUrl"})


class LookupStatus(StrEnum):
    FOUND = "FOUND"
    NOT_FOUND = "NOT_FOUND"
    BACKEND_ERROR = "BACKEND_ERROR"


@dataclass
class ProfileLookup:
    status: LookupStatus
    profile: Optional[PublicProfile] = None
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status == LookupStatus.FOUND


def has_active_subscription(subscriptions: Iterable[Subscription]) -> bool:
    """
    A user is subscribed while trialing or active, and until the end of the
    paid period after cancelling.
    """
    for subscription in subscriptions:
        if subscription.status in (SubscriptionStatus.TRIALING, SubscriptionStatus.ACTIVE):
            return True
        if (
            subscription.status == SubscriptionStatus.CANCELED
            and subscription.cancel_at_period_end
        ):
            return True
    return False


class ProfileService:
    def __init__(self, db: DbClient):
        self.db = db

    def resolve_public_profile(self, username: str) -> ProfileLookup:
        """Look up a profile by exact, case-sensitive username."""
        try:
            matches = self.db.find_users_by_username(username, limit=1)
        except Exception as e:
            logger.exception("Error fetching user data by username %r", username)
            return ProfileLookup(status=LookupStatus.BACKEND_ERROR, error=str(e))
        if not matches:
            logger.info("No such user: %r", username)
            return ProfileLookup(status=LookupStatus.NOT_FOUND)
        _, data = matches[0]
        return ProfileLookup(
            status=LookupStatus.FOUND, profile=PublicProfile.from_user_document(data)
        )

    def fetch_user(self, uid: str) -> Optional[dict]:
        return self.db.get_user(uid)

    def update_profile(self, uid: str, fields: dict) -> dict:
        unknown = set(fields) - PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported profile fields: {sorted(unknown)}")
        try:
            self.db.set_user(uid, fields, merge=True)
        except Exception:
            logger.exception("Error adding/updating user data for %s", uid)
            raise
        logger.info("User data added/updated successfully")
        return self.db.get_user(uid) or {}

    def is_username_taken(self, username: str) -> bool:
        return bool(self.db.find_users_by_username(username, limit=1))

    def has_username(self, uid: str) -> bool:
        user = self.db.get_user(uid)
        if user is None:
            return False
        username = user.get("username")
        return isinstance(username, str) and username.strip() != ""

    def claim_username(self, uid: str, username: str) -> None:
        """
        Check-then-set: two users claiming the same name at the same moment
        can both pass the check.
        """
        matches = self.db.find_users_by_username(username, limit=1)
        if matches and matches[0][0] != uid:
            raise UsernameTakenError(username)
        try:
            self.db.set_user(uid, {"username": username}, merge=True)
        except Exception:
            logger.exception("Error updating username for %s", uid)
            raise
        logger.info("Username updated successfully")

    def check_subscription_status(self, uid: str) -> bool:
        records = self.db.list_subscriptions(
            uid, statuses=[status.value for status in SubscriptionStatus]
        )
        return has_active_subscription(
            Subscription.from_document(record) for record in records
        )

    def list_templates(self) -> list[dict]:
        try:
            return self.db.list_templates()
        except Exception:
            logger.exception("Error fetching templates")
            raise

    def require_user(self, uid: str) -> dict:
        user = self.fetch_user(uid)
        if user is None:
            raise DocumentNotFoundError(f"users/{uid}")
        return user
