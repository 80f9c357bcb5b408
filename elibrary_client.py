"""eLibrary API client.

A small wrapper around the eLibrary REST API built on ``requests``.
Every high-level method returns a tuple ``(data, error)``: on success
``data`` holds the ``data`` member of the response envelope and
``error`` is ``None``; on failure ``data`` is ``None`` and ``error`` is
a dictionary with ``status_code`` and ``message`` keys.  Methods never
raise for HTTP or connection failures.

Example::

    client = ELibraryClient(base_url="http://localhost:8080")
    client.login("ferdy", "secret")
    page, error = client.list_books(search="dune")
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

Result = Tuple[Optional[Any], Optional[Dict[str, Any]]]


class ELibraryClient:
    """Client for the ``/api/v1`` routes of the eLibrary API."""

    def __init__(
        self,
        *,
        base_url: str,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ) -> None:
        """Initialise the client.

        Args:
            base_url: Server root, e.g. ``http://localhost:8080``.
            token: Optional bearer token.  :meth:`login` sets it too.
            session: Optional requests session to reuse.
            timeout: Per-request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Low level HTTP helper
    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
        form: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> Result:
        """Perform a request against ``/api/v1`` and unwrap the envelope."""
        url = f"{self.base_url}/api/v1{path}"
        headers: Dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                data=form,
                files=files,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            if not response.content:
                return None, None
            return response.json().get("data"), None
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            message = ""
            if exc.response is not None:
                try:
                    err_json = exc.response.json()
                    message = err_json.get("error") or err_json.get("message") or str(err_json)
                except ValueError:
                    message = exc.response.text
            if not message:
                message = str(exc)
            logger.error("API request failed (%s): %s", status, message)
            return None, {"status_code": status, "message": message}
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            return None, {"status_code": None, "message": str(exc)}

    @staticmethod
    def _cover_part(cover_path: Optional[str]) -> Optional[Dict[str, Any]]:
        if not cover_path:
            return None
        with open(cover_path, "rb") as fh:
            return {"cover_image": (os.path.basename(cover_path), fh.read())}

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------
    def register(self, username: str, email: str, password: str, full_name: str) -> Result:
        return self._request(
            "POST",
            "/auth/register",
            json_body={"username": username, "email": email, "password": password, "full_name": full_name},
        )

    def login(self, username: str, password: str) -> Result:
        """Log in and remember the returned token for later calls."""
        data, error = self._request(
            "POST", "/auth/login", json_body={"username": username, "password": password}
        )
        if data and data.get("token"):
            self.token = data["token"]
        return data, error

    # ------------------------------------------------------------------
    # Books
    # ------------------------------------------------------------------
    def list_books(self, page: int = 1, limit: int = 10, **filters: Any) -> Result:
        """List books.  ``filters`` may hold search, year, publisher, author."""
        params = {"page": page, "limit": limit}
        params.update({k: v for k, v in filters.items() if v not in (None, "")})
        return self._request("GET", "/books", params=params)

    def get_book(self, book_id: int) -> Result:
        return self._request("GET", f"/books/{book_id}")

    def create_book(self, fields: Dict[str, Any], cover_path: Optional[str] = None) -> Result:
        return self._request("POST", "/books", form=fields, files=self._cover_part(cover_path))

    def update_book(self, book_id: int, fields: Dict[str, Any], cover_path: Optional[str] = None) -> Result:
        return self._request(
            "PATCH", f"/books/{book_id}", form=fields, files=self._cover_part(cover_path)
        )

    def delete_book(self, book_id: int) -> Tuple[bool, Optional[Dict[str, Any]]]:
        _, error = self._request("DELETE", f"/books/{book_id}")
        return error is None, error
