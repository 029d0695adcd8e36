import sqlite3
import string
import uuid

import pytest

from wfstore.base import HTTPError
from wfstore.tokens import TokenStore

SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    username TEXT NOT NULL,
    password BLOB,
    email BLOB,
    status INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE accesstokens (
    token BLOB NOT NULL PRIMARY KEY,
    user_id INTEGER NOT NULL,
    sudo INTEGER NOT NULL DEFAULT 0,
    one_time INTEGER NOT NULL DEFAULT 0,
    created DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
    expires DATETIME
);
CREATE TABLE password_resets (
    user_id INTEGER NOT NULL,
    token TEXT NOT NULL PRIMARY KEY,
    used INTEGER NOT NULL,
    created DATETIME NOT NULL
);
"""


@pytest.fixture
def store():
    conn = sqlite3.connect(":memory:")
    conn.executescript(SCHEMA)
    conn.execute("INSERT INTO users (id, username) VALUES (7, 'alice')")
    conn.commit()
    db = TokenStore(conn)
    yield db
    conn.close()


def test_access_token_round_trip(store):
    token = store.get_access_token(7)
    assert str(uuid.UUID(token)) == token
    assert store.get_user_id(token) == 7
    assert store.get_user_id_privilege(token) == (7, False)
    # Non-one-time tokens keep working.
    assert store.get_user_id(token) == 7


def test_invalid_and_unknown_tokens(store):
    assert store.get_user_id("") == -1
    assert store.get_user_id("not-a-uuid") == -1
    assert store.get_user_id_privilege(str(uuid.uuid4())) == (-1, False)


def test_one_time_token_is_deleted_after_use(store):
    token = store.get_temporary_one_time_access_token(7, 0, True)
    assert store.get_user_id(token) == 7
    assert store.get_user_id(token) == -1


def test_temporary_token_expiry(store):
    token = store.get_temporary_access_token(7, 3600)
    assert store.get_user_id(token) == 7
    store.execute(
        "UPDATE accesstokens SET expires = DATETIME('now', '-1 HOUR') WHERE token = ?",
        (uuid.UUID(token).bytes,),
    )
    assert store.get_user_id(token) == -1


def test_sudo_privilege(store):
    token = uuid.uuid4()
    store.execute(
        "INSERT INTO accesstokens (token, user_id, sudo, one_time) VALUES (?, ?, 1, 0)",
        (token.bytes, 7),
    )
    assert store.get_user_id_privilege(str(token)) == (7, True)


def test_delete_token(store):
    token = store.get_access_token(7)
    store.delete_token(uuid.UUID(token).bytes)
    assert store.get_user_id(token) == -1


def test_delete_missing_token_raises(store):
    with pytest.raises(HTTPError) as info:
        store.delete_token(uuid.uuid4().bytes)
    assert info.value.status == 404
    assert info.value.message == "Token is invalid or doesn't exist"


def test_fetch_last_access_token(store):
    assert store.fetch_last_access_token(7) == ""
    token = store.get_access_token(7)
    assert store.fetch_last_access_token(7) == token
    assert store.fetch_last_access_token(8) == ""


def test_password_reset_round_trip(store):
    token = store.create_password_reset_token(7)
    assert len(token) == 32
    assert set(token) <= set(string.ascii_letters + string.digits)
    assert store.get_user_from_password_reset(token) == 7
    store.consume_password_reset_token(token)
    assert store.get_user_from_password_reset(token) == 0


def test_password_reset_unknown_and_old(store):
    assert store.get_user_from_password_reset("token") == 0
    store.execute(
        "INSERT INTO password_resets (user_id, token, used, created) "
        "VALUES (7, 'token', 0, DATETIME('now', '-4 HOUR'))"
    )
    assert store.get_user_from_password_reset("token") == 0


def test_password_reset_tokens_differ(store):
    first = store.create_password_reset_token(7)
    second = store.create_password_reset_token(7)
    assert first != second
    assert store.get_user_from_password_reset(first) == 7
    assert store.get_user_from_password_reset(second) == 7