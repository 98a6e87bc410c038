"""
Link collection management for a user's public page.

The collection is the `links` array on the user document. Every mutation
reads the whole array, edits a copy and writes the whole array back (append
uses an array union instead). Two editors working at once can overwrite each
other's changes; the last write wins.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any, Optional

from fanslink.db import DbClient
from fanslink.errors import DocumentNotFoundError, LinkValidationError
from fanslink.types import Link, LinkMetadata

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(
    r"http[s]?://(?:[a-zA-Z]|[0-9]|[$-_@.&+]|[!*\(\),]|(?:%[0-9a-fA-F][0-9a-fA-F]))+"
)

IMMUTABLE_LINK_FIELDS = frozenset({"id"})


def validate_url(url: Optional[str]) -> bool:
    """True if `url` contains something that looks like an http(s) URL."""
    if not isinstance(url, str):
        return False
    return URL_PATTERN.search(url) is not None


class LinkService:
    def __init__(self, db: DbClient):
        self.db = db

    def _load_links(self, uid: str) -> list[dict]:
        user = self.db.get_user(uid)
        if user is None:
            raise DocumentNotFoundError(f"users/{uid}")
        return list(user.get("links") or [])

    def _write_links(self, uid: str, links: list[dict], action: str) -> list[dict]:
        try:
            self.db.update_user(uid, {"links": links})
        except Exception:
            logger.exception("Error %s for user %s", action, uid)
            raise
        logger.info("Link %s for user %s succeeded", action, uid)
        return links

    def list_links(self, uid: str) -> list[dict]:
        user = self.db.get_user(uid)
        if user is None:
            return []
        return list(user.get("links") or [])

    def add_link(
        self,
        uid: Optional[str],
        title: Optional[str],
        link: Optional[str],
        url_metadata: Optional[dict],
    ) -> list[dict]:
        """
        Append a new, inactive link and return the updated collection.

        The id is the current link count plus one. Ids are not reclaimed, so
        after a delete the new id can repeat an existing one; that is logged
        but left as is. If the repeated entry is identical to the new one the
        array union stores nothing, and the returned collection says so.
        """
        if not title or not link or not uid or url_metadata is None:
            raise LinkValidationError("Missing required fields")
        if not validate_url(link):
            raise LinkValidationError(f"Invalid URL: {link}")
        if not isinstance(url_metadata, dict) or not isinstance(
            url_metadata.get("metadata") or {}, dict
        ):
            raise LinkValidationError("Link metadata must be an object")

        user = self.db.get_user(uid)
        current_links = list((user or {}).get("links") or [])
        new_id = len(current_links) + 1
        if any(existing.get("id") == new_id for existing in current_links):
            logger.warning(
                "Link id %d already exists for user %s; ids are count based",
                new_id,
                uid,
            )

        new_link = Link(
            id=new_id,
            title=title,
            link=link,
            active=False,
            metadata=LinkMetadata.from_document(url_metadata),
        ).as_document()
        logger.debug("New link: %s", new_link)

        try:
            if not current_links:
                self.db.set_user(uid, {"links": [new_link]}, merge=True)
            else:
                self.db.append_links(uid, [new_link])
        except Exception:
            logger.exception("Error adding link for user %s", uid)
            raise
        if new_link in current_links:
            return current_links
        return current_links + [new_link]

    def replace_links(self, uid: str, links: list[dict]) -> list[dict]:
        """Overwrite the collection, e.g. after the user reorders it."""
        return self._write_links(uid, list(links), "reorder")

    def set_link_active(self, uid: str, link_id: int, active: bool) -> list[dict]:
        links = self._load_links(uid)
        updated = [
            {**link, "active": active} if link.get("id") == link_id else link
            for link in links
        ]
        return self._write_links(uid, updated, "active state update")

    def set_link_field(
        self, uid: str, link_id: int, field: str, value: Any
    ) -> list[dict]:
        if not field or field in IMMUTABLE_LINK_FIELDS:
            raise LinkValidationError(f"Field cannot be updated: {field!r}")
        if field == "link" and not validate_url(value):
            raise LinkValidationError(f"Invalid URL: {value}")
        links = self._load_links(uid)
        updated = [
            {**link, field: value} if link.get("id") == link_id else link
            for link in links
        ]
        return self._write_links(uid, updated, f"{field} update")

    def delete_link(self, uid: str, link_id: int) -> list[dict]:
        links = self._load_links(uid)
        updated = [link for link in links if link.get("id") != link_id]
        return self._write_links(uid, updated, "delete")


def find_duplicate_ids(links: list[dict]) -> list:
    counts = Counter(link.get("id") for link in links)
    return sorted(
        (link_id for link_id, count in counts.items() if count > 1),
        key=lambda value: (value is None, str(value)),
    )


def renumber_links(links: list[dict]) -> list[dict]:
    """Assign ids 1..n in display order."""
    return [{**link, "id": index} for index, link in enumerate(links, start=1)]


def audit_link_ids(db: DbClient, fix: bool = False) -> list[str]:
    """
    Return the uids whose link lists repeat an id, renumbering them when
    `fix` is set.
    """
    service = LinkService(db)
    affected = []
    for uid, data in db.iter_users():
        links = list(data.get("links") or [])
        duplicates = find_duplicate_ids(links)
        if not duplicates:
            continue
        affected.append(uid)
        logger.warning("User %s has duplicate link ids %s", uid, duplicates)
        if fix:
            service.replace_links(uid, renumber_links(links))
    return affected
