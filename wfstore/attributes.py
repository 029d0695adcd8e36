"""Collection attributes, alias redirects and pinned post positions."""

from __future__ import annotations

import logging

from .base import Database

log = logging.getLogger(__name__)


class CollectionAttributeStore(Database):
    """Queries on ``collectionattributes``, ``collectionredirects`` and pins."""

    def _attribute_value(self, collection_id: int, attr: str, caller: str) -> str | None:
        """Stored value of an attribute, or None when missing or unreadable."""
        try:
            row = self.query_one(
                "SELECT value FROM collectionattributes "
                "WHERE collection_id = ? AND attribute = ?",
                (collection_id, attr),
            )
        except Exception as exc:
            log.error(
                "Couldn't SELECT value in %s for attribute '%s': %s", caller, attr, exc
            )
            return None
        if row is None:
            return None
        value = row[0]
        if value is None:
            return ""
        if isinstance(value, (bytes, bytearray)):
            return bytes(value).decode("utf-8", errors="replace")
        return str(value)

    def is_collection_attribute_on(self, collection_id: int, attr: str) -> bool:
        """Whether the attribute is set to ``"1"`` for the collection."""
        return self._attribute_value(collection_id, attr, "isCollectionAttributeOn") == "1"

    def collection_has_attribute(self, collection_id: int, attr: str) -> bool:
        """Whether the attribute is present for the collection, whatever its value."""
        return (
            self._attribute_value(collection_id, attr, "collectionHasAttribute") is not None
        )

    def get_collection_attribute(self, collection_id: int, attr: str) -> str:
        """Value of the attribute, or an empty string when it isn't set."""
        value = self._attribute_value(collection_id, attr, "getCollectionAttribute")
        return value if value is not None else ""

    def set_collection_attribute(self, collection_id: int, attr: str, value: str) -> None:
        """Insert the attribute, or replace its value if it already exists."""
        try:
            self.execute(
                "INSERT INTO collectionattributes (collection_id, attribute, value) "
                "VALUES (?, ?, ?) "
                + self.upsert("collection_id", "attribute")
                + " value = ?",
                (collection_id, attr, value, value),
            )
        except Exception as exc:
            log.error("Unable to INSERT into collectionattributes: %s", exc)
            raise

    def get_collection_redirect(self, alias: str) -> str:
        """The alias a renamed collection now lives at, or an empty string."""
        try:
            row = self.query_one(
                "SELECT new_alias FROM collectionredirects WHERE prev_alias = ?", (alias,)
            )
        except Exception as exc:
            log.error("Failed selecting from collectionredirects: %s", exc)
            return ""
        if row is None or row[0] is None:
            return ""
        return str(row[0])

    def remove_collection_redirect(self, alias: str) -> None:
        """Delete any redirect away from the given alias."""
        try:
            self.execute("DELETE FROM collectionredirects WHERE prev_alias = ?", (alias,))
        except Exception as exc:
            log.error("Unable to delete from collectionredirects: %s", exc)
            raise

    def get_last_pinned_post_pos(self, collection_id: int) -> int:
        """Highest pinned position in the collection, or -1 if nothing is pinned."""
        try:
            row = self.query_one(
                "SELECT MAX(pinned_position) FROM posts "
                "WHERE collection_id = ? AND pinned_position IS NOT NULL",
                (collection_id,),
            )
        except Exception as exc:
            log.error("Failed selecting from posts: %s", exc)
            return -1
        if row is None or row[0] is None:
            return -1
        return int(row[0])