# acs_core/identity.py
"""
Map an authorized key to a person.

The log's user field is normally one shared service account; who actually
holds the key is recorded by convention in the key comment (``alice@laptop``).
"""
from __future__ import annotations
import logging

from acs_core.errors import UnknownUserError
from acs_core.storage import StorageProvider, User

log = logging.getLogger("ACS.Identity")


def username_from_comment(comment: str) -> str:
    return comment.strip().split("@", 1)[0]


class IdentityResolver:
    def __init__(self, store: StorageProvider):
        self.store = store

    def resolve(self, comment: str) -> User:
        username = username_from_comment(comment)
        if not username:
            raise UnknownUserError(f"key comment '{comment}' names no user")
        user = self.store.get_user(username)
        if user is None:
            raise UnknownUserError(f"User '{username}' not in database!")
        log.debug(f"[IDENTITY] {comment!r} -> {user.username} ({user.id})")
        return user
