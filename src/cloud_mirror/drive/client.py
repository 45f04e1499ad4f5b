"""Cloud-drive metadata API client authenticated with an externally supplied bearer token."""

from __future__ import annotations

import json
import logging
import socket
from typing import TYPE_CHECKING, Any
from urllib import request as urllib_request
from urllib.error import HTTPError, URLError

from cloud_mirror.errors import AuthExpiredError, MalformedResponseError, NetworkFailureError

if TYPE_CHECKING:
    from cloud_mirror.drive.account import AccountProvider

logger = logging.getLogger(__name__)

CHANGES_PATH = "changes"
DEFAULT_TIMEOUT_SECONDS = 60.0
AUTH_FAILURE_CODES = frozenset({401, 403})


class DriveClient:
    """Authenticated client for the metadata endpoint of a cloud-drive account."""

    def __init__(
        self,
        account: AccountProvider,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialise the client.

        Args:
            account: Provider of the bearer token and metadata endpoint URL.
                Read on every request so that a renewed token is picked up.
            timeout: Socket timeout in seconds for each request.
        """
        self._account = account
        self._timeout = timeout

    def _url(self, path: str) -> str:
        base = self._account.metadata_url
        if not base.endswith("/"):
            base += "/"
        return f"{base}{path.lstrip('/')}"

    def post(self, path: str, payload: dict[str, Any]) -> str:
        """Perform an authenticated POST with a JSON body.

        Args:
            path: URL path relative to the account's metadata URL.
            payload: JSON-serialisable request body.

        Returns:
            The response body decoded as UTF-8 text.

        Raises:
            AuthExpiredError: If the service rejects the bearer token.
            NetworkFailureError: On any other non-2xx status, transport error or timeout.
            MalformedResponseError: If the response body is not valid UTF-8.
        """
        url = self._url(path)
        req = urllib_request.Request(
            url,
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Authorization": f"Bearer {self._account.access_token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            method="POST",
        )
        try:
            with urllib_request.urlopen(req, timeout=self._timeout) as resp:
                raw_body = resp.read()
        except HTTPError as exc:
            raw = exc.read()
            try:
                detail = json.loads(raw).get("message", exc.reason)
            except (ValueError, AttributeError):
                detail = exc.reason
            if exc.code in AUTH_FAILURE_CODES:
                logger.error("[post] credential rejected; status:%d;path:%s", exc.code, path)
                raise AuthExpiredError(exc.code, str(detail)) from exc
            raise NetworkFailureError(exc.code, str(detail)) from exc
        except (URLError, socket.timeout, TimeoutError) as exc:
            reason = getattr(exc, "reason", exc)
            logger.error("[post] transport error; path:%s;reason:%s", path, reason)
            raise NetworkFailureError(None, str(reason)) from exc

        try:
            return raw_body.decode("utf-8")  # type: ignore[no-any-return]
        except UnicodeDecodeError as exc:
            logger.error("[post] undecodable response body; path:%s;position:%d", path, exc.start)
            raise MalformedResponseError(f"response body is not valid UTF-8: {exc}") from exc

    def post_changes(self, payload: dict[str, Any]) -> str:
        """Request the next changelog page; see ``post`` for errors."""
        return self.post(CHANGES_PATH, payload)
