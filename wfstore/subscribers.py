"""E-mail subscribers of collections."""

from __future__ import annotations

import logging
import secrets
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

from .base import Database, HTTPError

log = logging.getLogger(__name__)

_FRIENDLY_CHARS = "0123456789BCDFGHJKLMNPQRSTVWXYZbcdfghjklmnpqrstvwxyz"
_SUB_ID_LENGTH = 8
_TOKEN_LENGTH = 16
_MYSQL_ERR_DUPLICATE_KEY = 1062

_SUBSCRIBER_COLS = "id, collection_id, user_id, email, subscribed, token, confirmed, allow_export"


def _random_string(length: int) -> str:
    return "".join(secrets.choice(_FRIENDLY_CHARS) for _ in range(length))


def _is_duplicate_key(exc: Exception) -> bool:
    """Whether a driver error reports a unique key violation."""
    if isinstance(exc, sqlite3.IntegrityError):
        return "UNIQUE" in str(exc).upper()
    args = getattr(exc, "args", ())
    return bool(args) and args[0] == _MYSQL_ERR_DUPLICATE_KEY


def _to_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8")
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


@dataclass
class EmailSubscriber:
    """A subscription of an e-mail address or a local user to a collection."""

    id: str
    collection_id: int
    user_id: int | None = None
    email: str | None = None
    subscribed: datetime | None = None
    token: str = ""
    confirmed: bool = False
    allow_export: bool = False
    acct_email: Any = None

    def subscribed_friendly(self) -> str:
        """Subscription date written like "January 2, 2006"."""
        if self.subscribed is None:
            return ""
        d = self.subscribed
        return f"{d:%B} {d.day}, {d.year}"


def _subscriber_from_row(row: Sequence[Any], with_account_email: bool) -> EmailSubscriber:
    if with_account_email:
        (sub_id, coll_id, user_id, email, acct_email,
         subscribed, token, confirmed, allow_export) = row
    else:
        (sub_id, coll_id, user_id, email,
         subscribed, token, confirmed, allow_export) = row
        acct_email = None
    return EmailSubscriber(
        id=str(sub_id),
        collection_id=int(coll_id),
        user_id=int(user_id) if user_id is not None else None,
        email=_to_text(email),
        subscribed=_to_datetime(subscribed),
        token=_to_text(token) or "",
        confirmed=bool(confirmed),
        allow_export=bool(allow_export),
        acct_email=acct_email,
    )


class SubscriberStore(Database):
    """Queries on the ``emailsubscribers`` table."""

    def add_email_subscription(
        self, collection_id: int, user_id: int, email: str, confirmed: bool
    ) -> EmailSubscriber | None:
        """Subscribe an address or user; an existing subscription is returned as is."""
        sub_id = _random_string(_SUB_ID_LENGTH)
        token = _random_string(_TOKEN_LENGTH)
        email_val = email if email else None
        user_val = user_id if user_id and user_id > 0 else None
        try:
            self.execute(
                "INSERT INTO emailsubscribers "
                "(id, collection_id, user_id, email, subscribed, token, confirmed) "
                "VALUES (?, ?, ?, ?, " + self.now() + ", ?, ?)",
                (sub_id, collection_id, user_val, email_val, token, bool(confirmed)),
            )
        except Exception as exc:
            if _is_duplicate_key(exc):
                log.info(
                    "Duplicate subscriber for email %s, user %s; returning existing subscriber",
                    email, user_id,
                )
                return self.fetch_email_subscriber(email, user_id, collection_id)
            raise
        return EmailSubscriber(
            id=sub_id,
            collection_id=collection_id,
            user_id=user_val,
            email=email_val,
            token=token,
        )

    def is_email_subscriber(self, email: str, user_id: int, collection_id: int) -> bool:
        """Whether the address (or, without one, the user) is subscribed."""
        try:
            if email:
                row = self.query_one(
                    "SELECT 1 FROM emailsubscribers WHERE email = ? AND collection_id = ?",
                    (email, collection_id),
                )
            else:
                row = self.query_one(
                    "SELECT 1 FROM emailsubscribers WHERE user_id = ? AND collection_id = ?",
                    (user_id, collection_id),
                )
        except Exception:
            return False
        return row is not None

    def get_email_subscribers(
        self, collection_id: int, require_confirmed: bool
    ) -> list[EmailSubscriber]:
        """Subscribers of a collection, most recent first."""
        cond = " AND confirmed = 1" if require_confirmed else ""
        try:
            rows = self.query_all(
                "SELECT s.id, collection_id, user_id, s.email, u.email, subscribed, "
                "token, confirmed, allow_export "
                "FROM emailsubscribers s "
                "LEFT JOIN users u ON u.id = user_id "
                "WHERE collection_id = ?" + cond + " "
                "ORDER BY subscribed DESC",
                (collection_id,),
            )
        except Exception as exc:
            log.error(
                "Failed selecting email subscribers for collection %d: %s", collection_id, exc
            )
            raise
        subs = []
        for row in rows:
            try:
                subs.append(_subscriber_from_row(row, True))
            except (TypeError, ValueError) as exc:
                log.error("Failed scanning row from email subscribers: %s", exc)
        return subs

    def fetch_email_subscriber_email(self, sub_id: str, token: str) -> str:
        """E-mail address of the subscriber with the given ID and token."""
        try:
            row = self.query_one(
                "SELECT email FROM emailsubscribers WHERE id = ? AND token = ?",
                (sub_id, token),
            )
        except Exception as exc:
            log.error("Couldn't SELECT email from emailsubscribers: %s", exc)
            raise RuntimeError("Something went very wrong.") from exc
        if row is None:
            raise LookupError("Subscriber doesn't exist or token is invalid.")
        return _to_text(row[0]) or ""

    def fetch_email_subscriber(
        self, email: str, user_id: int, collection_id: int
    ) -> EmailSubscriber | None:
        """The subscription of the address (or user) to a collection, or None."""
        if email:
            row = self.query_one(
                "SELECT " + _SUBSCRIBER_COLS
                + " FROM emailsubscribers WHERE email = ? AND collection_id = ?",
                (email, collection_id),
            )
        else:
            row = self.query_one(
                "SELECT " + _SUBSCRIBER_COLS
                + " FROM emailsubscribers WHERE user_id = ? AND collection_id = ?",
                (user_id, collection_id),
            )
        if row is None:
            return None
        return _subscriber_from_row(row, False)

    def delete_email_subscriber(self, sub_id: str, token: str) -> None:
        """Remove a subscription identified by its ID and token."""
        cursor = self.execute(
            "DELETE FROM emailsubscribers WHERE id = ? AND token = ?", (sub_id, token)
        )
        if not cursor.rowcount:
            raise HTTPError(404, "Invalid token, or subscriber doesn't exist")

    def delete_email_subscriber_by_user(
        self, email: str, user_id: int, collection_id: int
    ) -> None:
        """Remove the subscription of the address (or user) to a collection."""
        if email:
            cursor = self.execute(
                "DELETE FROM emailsubscribers WHERE email = ? AND collection_id = ?",
                (email, collection_id),
            )
        else:
            cursor = self.execute(
                "DELETE FROM emailsubscribers WHERE user_id = ? AND collection_id = ?",
                (user_id, collection_id),
            )
        if not cursor.rowcount:
            raise HTTPError(404, "Subscriber doesn't exist")

    def update_subscriber_confirmed(self, sub_id: str, token: str) -> None:
        """Confirm every subscription of the subscriber's e-mail address."""
        try:
            email = self.fetch_email_subscriber_email(sub_id, token)
        except Exception as exc:
            log.error("Didn't fetch email subscriber: %s", exc)
            raise
        try:
            self.execute("UPDATE emailsubscribers SET confirmed = 1 WHERE email = ?", (email,))
        except Exception as exc:
            log.error("Could not update email subscriber confirmation status: %s", exc)
            raise

    def is_subscriber_confirmed(self, email: str) -> bool:
        """Whether the address has a confirmed subscription anywhere."""
        try:
            row = self.query_one(
                "SELECT 1 FROM emailsubscribers WHERE email = ? AND confirmed = 1", (email,)
            )
        except Exception as exc:
            log.error("Couldn't SELECT in isSubscriberConfirmed: %s", exc)
            return False
        return row is not None