from client.errors import ApiError
from client.http import ApiClient
from client.services import (
    AnalyticsService,
    AuthService,
    BinService,
    CollectionService,
    RouteService,
    UserService,
)
from client.session import JsonFileTokenStore, MemoryTokenStore, Session, authorize_headers


class BinRouteClient:
    """Convenience bundle of every service over one ApiClient."""

    def __init__(self, base_url=None, session=None, timeout=None, http=None):
        self.api = ApiClient(base_url, session=session, timeout=timeout, http=http)
        self.auth = AuthService(self.api)
        self.routes = RouteService(self.api)
        self.collections = CollectionService(self.api)
        self.bins = BinService(self.api)
        self.users = UserService(self.api)
        self.analytics = AnalyticsService(self.api)

    @property
    def session(self):
        return self.api.session


__all__ = [
    "AnalyticsService",
    "ApiClient",
    "ApiError",
    "AuthService",
    "BinRouteClient",
    "BinService",
    "CollectionService",
    "JsonFileTokenStore",
    "MemoryTokenStore",
    "RouteService",
    "Session",
    "UserService",
    "authorize_headers",
]
