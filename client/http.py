"""
HTTP transport for the bin collection API.

Every call returns the unwrapped ``data`` object of a success envelope.
Anything else raises ApiError; requests' own Timeout and ConnectionError
reach the caller untouched. Nothing is retried.
"""
import logging
import os

import requests

from client.errors import ApiError
from client.session import Session, authorize_headers

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000/api"
DEFAULT_TIMEOUT = 10


class ApiClient:
    def __init__(self, base_url=None, session=None, timeout=None, http=None):
        self.base_url = (
            base_url or os.environ.get("BINROUTE_API_URL") or DEFAULT_BASE_URL
        ).rstrip("/")
        self.timeout = float(
            timeout or os.environ.get("BINROUTE_API_TIMEOUT") or DEFAULT_TIMEOUT
        )
        self.session = session or Session()
        self.http = http or requests.Session()

    def request(self, method, path, json=None, params=None):
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = authorize_headers({"Content-Type": "application/json"}, self.session)
        if params:
            params = {k: v for k, v in params.items() if v not in (None, "")}

        response = self.http.request(
            method, url, json=json, params=params, headers=headers, timeout=self.timeout
        )
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return self._unwrap(response)

    def _unwrap(self, response):
        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code == 401:
            self.session.expire()

        message = None
        if isinstance(body, dict):
            message = body.get("message")

        if not response.ok:
            raise ApiError(response.status_code, message or response.reason or "Request failed", body)
        if not isinstance(body, dict) or body.get("success") is not True or "data" not in body:
            raise ApiError(response.status_code, message or "Malformed response envelope", body)
        return body["data"]

    def get(self, path, params=None):
        return self.request("GET", path, params=params)

    def post(self, path, json=None):
        return self.request("POST", path, json=json)

    def put(self, path, json=None):
        return self.request("PUT", path, json=json)

    def delete(self, path):
        return self.request("DELETE", path)
