# wfstore

A small data-access layer for a multi-user blogging platform. It wraps a
DB-API connection (SQLite by default, MySQL-style SQL when asked) and offers
stores for the pieces of data such a platform keeps:

- `Database` — the shared base: driver-aware SQL fragments (`now()`,
  `clip()`, `upsert()`, `date_add()`, `date_sub()`) and the helpers
  `execute()`, `query_one()`, `query_all()` and `database_initialized()`.
- `UserStore` — password and email state, post and user counts, user
  status and invites.
- `TokenStore` — access tokens (permanent, temporary and one-time) and
  password-reset tokens.
- `CollectionAttributeStore` — per-collection attributes, alias
  redirects and pinned-post positions.
- `SubscriberStore` and `EmailSubscriber` — email subscriptions to
  collections and their confirmation.
- `OAuthStore` and `OAuthAccountInfo` — OAuth client state and links
  between local and remote accounts.
- `JobStore` and `PostJob` — delayed publishing jobs for posts.

Errors that map onto an HTTP response are raised as `HTTPError`, which
carries a status code and a message.

## Transactions

`wfstore.tx` gives two ways to run work inside a transaction:

```python
import sqlite3
from wfstore.tx import run_transaction, transaction

conn = sqlite3.connect(":memory:")
conn.execute("CREATE TABLE t (x INTEGER)")

with transaction(conn) as cur:
    cur.execute("INSERT INTO t (x) VALUES (1)")

def work(cur):
    cur.execute("INSERT INTO t (x) VALUES (2)")

run_transaction(conn, work)
```

Both commit when the work succeeds and roll back, re-raising the error,
when it fails.

## Installing

```
pip install .
```

Run the tests with:

```
pip install ".[test]"
pytest
```