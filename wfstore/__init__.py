"""SQL data store for users, tokens, collections, subscribers, OAuth links and publish jobs."""

__version__ = "0.1.0"

__all__ = [
    "attributes",
    "base",
    "oauth",
    "subscribers",
    "tokens",
    "tx",
    "users",
]