# FilmGear Booking - Film Equipment Booking and Inventory System
# Copyright (C) 2025 Oleg Tokmakov
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.


"""HTTP transport for the client services."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from filmgear.client.storage import TOKEN_KEY, Storage

logger = logging.getLogger(__name__)


@dataclass
class Result:
    """Outcome of one API call, already unwrapped from the server envelope."""

    ok: bool
    status_code: int = 0
    data: Any = None
    message: Optional[str] = None
    error: Optional[str] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)
    pagination: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)


ENVELOPE_KEYS = {"success", "data", "message", "error", "errors", "pagination"}


class ApiClient:
    """Sends requests with the stored bearer token and normalises responses."""

    def __init__(self, http: httpx.Client, storage: Storage, prefix: str = "/api"):
        self.http = http
        self.storage = storage
        self.prefix = prefix.rstrip("/")

    @property
    def token(self) -> Optional[str]:
        return self.storage.get(TOKEN_KEY)

    def set_token(self, token: str) -> None:
        self.storage.set(TOKEN_KEY, token)

    def clear_token(self) -> None:
        self.storage.remove(TOKEN_KEY)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Result:
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = self.http.request(
                method,
                f"{self.prefix}{path}",
                params=params or None,
                json=json,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            logger.warning("Request %s %s failed: %s", method, path, e)
            return Result(ok=False, error="network_error", message=str(e))

        if response.status_code == 401:
            self.clear_token()

        return self._to_result(response)

    @staticmethod
    def _to_result(response: httpx.Response) -> Result:
        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            ok = response.is_success
            return Result(
                ok=ok,
                status_code=response.status_code,
                data=body,
                error=None if ok else "server_error",
                message=None if ok else response.text or response.reason_phrase,
            )

        ok = bool(body.get("success", response.is_success)) and response.is_success
        return Result(
            ok=ok,
            status_code=response.status_code,
            data=body.get("data"),
            message=body.get("message"),
            error=None if ok else body.get("error", "server_error"),
            errors=body.get("errors") or [],
            pagination=body.get("pagination"),
            extra={k: v for k, v in body.items() if k not in ENVELOPE_KEYS},
        )

    def get(self, path: str, **params) -> Result:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> Result:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Any = None) -> Result:
        return self.request("PUT", path, json=json)

    def patch(self, path: str, json: Any = None) -> Result:
        return self.request("PATCH", path, json=json)

    def delete(self, path: str) -> Result:
        return self.request("DELETE", path)
