"""
Client-side credentials.

A Session holds the bearer token and the signed-in user's profile. It is
passed to the ApiClient explicitly; persistence is delegated to a token
store so the same session code works in memory or against a file.
"""
import json
import logging
import os

logger = logging.getLogger(__name__)


class MemoryTokenStore:
    def __init__(self):
        self._data = {}

    def load(self):
        return dict(self._data)

    def save(self, data):
        self._data = dict(data)

    def clear(self):
        self._data = {}


class JsonFileTokenStore:
    """Keeps ``{"token": ..., "user": ...}`` in a JSON file."""

    def __init__(self, path):
        self.path = path

    def load(self):
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as fh:
            try:
                return json.load(fh)
            except json.JSONDecodeError:
                logger.warning("Ignoring unreadable credentials file %s", self.path)
                return {}

    def save(self, data):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2)

    def clear(self):
        if os.path.exists(self.path):
            os.remove(self.path)


class Session:
    def __init__(self, store=None):
        self.store = store or MemoryTokenStore()
        saved = self.store.load()
        self.token = saved.get("token")
        self.user = saved.get("user")
        self._listeners = []

    @property
    def is_authenticated(self):
        return bool(self.token)

    def set(self, token, user):
        self.token = token
        self.user = user
        self.store.save({"token": token, "user": user})

    def clear(self):
        self.token = None
        self.user = None
        self.store.clear()

    def on_unauthenticated(self, callback):
        """Register ``callback()`` to run when the server rejects the token."""
        self._listeners.append(callback)
        return callback

    def expire(self):
        """Drop credentials after a 401 and notify listeners."""
        logger.info("Session rejected by server; clearing credentials")
        self.clear()
        for callback in list(self._listeners):
            callback()


def authorize_headers(headers, session):
    """Return a copy of ``headers`` carrying the session's bearer token."""
    out = dict(headers or {})
    if session is not None and session.token:
        out["Authorization"] = f"Bearer {session.token}"
    return out
