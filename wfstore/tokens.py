"""Access tokens and passphrase reset tokens."""

from __future__ import annotations

import logging
import secrets
import string
import uuid

from .base import Database, HTTPError

log = logging.getLogger(__name__)

_ALPHANUMERIC = string.digits + string.ascii_letters
_RESET_TOKEN_LENGTH = 32
_RESET_TOKEN_VALID_HOURS = 3


def _parse_token(access_token: str) -> bytes:
    """Binary form of a hexadecimal UUID token, or empty bytes if it isn't one."""
    if not access_token:
        return b""
    try:
        return uuid.UUID(access_token.strip()).bytes
    except (ValueError, AttributeError, TypeError):
        return b""


def _random_string(length: int) -> str:
    return "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))


class TokenStore(Database):
    """Queries on the ``accesstokens`` and ``password_resets`` tables."""

    def get_user_id_privilege(self, access_token: str) -> tuple[int, bool]:
        """User ID and sudo flag for a valid token, or ``(-1, False)``.

        A one-time token is deleted once it has been looked up.
        """
        token = _parse_token(access_token)
        if not token:
            return -1, False
        try:
            row = self.query_one(
                "SELECT user_id, sudo, one_time FROM accesstokens WHERE token = ? "
                "AND (expires IS NULL OR expires > " + self.now() + ")",
                (token,),
            )
        except Exception as exc:
            log.error("Couldn't SELECT accesstoken: %s", exc)
            return -1, False
        if row is None:
            return -1, False
        user_id, sudo, one_time = row
        if one_time:
            try:
                self.delete_token(token)
            except Exception as exc:
                log.error("Couldn't delete one-time token: %s", exc)
        return int(user_id), bool(sudo)

    def get_user_id(self, access_token: str) -> int:
        """User ID associated with a hexadecimal token, or -1 if there is none."""
        user_id, _ = self.get_user_id_privilege(access_token)
        return user_id

    def delete_token(self, token: bytes) -> None:
        """Delete a token given in binary form."""
        cursor = self.execute("DELETE FROM accesstokens WHERE token = ?", (bytes(token),))
        if not cursor.rowcount:
            raise HTTPError(404, "Token is invalid or doesn't exist")

    def fetch_last_access_token(self, user_id: int) -> str:
        """The user's most recent valid token, or an empty string."""
        try:
            row = self.query_one(
                "SELECT token FROM accesstokens WHERE user_id = ? "
                "AND (expires IS NULL OR expires > " + self.now() + ") "
                "ORDER BY created DESC LIMIT 1",
                (user_id,),
            )
        except Exception as exc:
            log.error("Failed selecting from accesstoken: %s", exc)
            return ""
        if row is None:
            return ""
        raw = row[0]
        if isinstance(raw, str):
            raw = raw.encode("latin-1", errors="replace")
        try:
            return str(uuid.UUID(bytes=bytes(raw)))
        except (ValueError, TypeError):
            return ""

    def get_access_token(self, user_id: int) -> str:
        """Create a non-expiring token for the user."""
        return self.get_temporary_one_time_access_token(user_id, 0, False)

    def get_temporary_access_token(self, user_id: int, valid_secs: int) -> str:
        """Create a token valid for ``valid_secs`` seconds; 0 means no expiry."""
        return self.get_temporary_one_time_access_token(user_id, valid_secs, False)

    def get_temporary_one_time_access_token(
        self, user_id: int, valid_secs: int, one_time: bool
    ) -> str:
        """Create a token that may expire and may be good for one use only."""
        token = uuid.uuid4()
        expiration = "NULL"
        if valid_secs > 0:
            expiration = self.date_add(valid_secs, "SECOND")
        try:
            self.execute(
                "INSERT INTO accesstokens (token, user_id, one_time, expires) "
                "VALUES (?, ?, ?, " + expiration + ")",
                (token.bytes, user_id, bool(one_time)),
            )
        except Exception as exc:
            log.error("Couldn't INSERT accesstoken: %s", exc)
            raise
        return str(token)

    def create_password_reset_token(self, user_id: int) -> str:
        """Create and store a random token for resetting the user's passphrase."""
        token = _random_string(_RESET_TOKEN_LENGTH)
        try:
            self.execute(
                "INSERT INTO password_resets (user_id, token, used, created) "
                "VALUES (?, ?, 0, " + self.now() + ")",
                (user_id, token),
            )
        except Exception as exc:
            log.error("Couldn't INSERT password_resets: %s", exc)
            raise
        return token

    def get_user_from_password_reset(self, token: str) -> int:
        """User ID for an unused reset token younger than three hours, else 0."""
        try:
            row = self.query_one(
                "SELECT user_id FROM password_resets WHERE token = ? AND used = 0 "
                "AND created > " + self.date_sub(_RESET_TOKEN_VALID_HOURS, "HOUR"),
                (token,),
            )
        except Exception:
            return 0
        if row is None or row[0] is None:
            return 0
        return int(row[0])

    def consume_password_reset_token(self, token: str) -> None:
        """Mark a reset token as used."""
        try:
            self.execute("UPDATE password_resets SET used = 1 WHERE token = ?", (token,))
        except Exception as exc:
            log.error("Couldn't UPDATE password_resets: %s", exc)
            raise