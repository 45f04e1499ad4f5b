"""Unit tests for drive/client.py — authenticated changelog requests and error mapping."""

import json
import socket
from io import BytesIO
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError, URLError

import pytest

from cloud_mirror.drive.account import Account
from cloud_mirror.drive.client import DriveClient
from cloud_mirror.errors import AuthExpiredError, MalformedResponseError, NetworkFailureError

METADATA_URL = "https://cdws.example.com/drive/v1/"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_client(metadata_url: str = METADATA_URL, timeout: float = 30.0) -> DriveClient:
    account = Account(
        email="user@example.com",
        access_token="fake-token-abc",
        metadata_url=metadata_url,
        content_url="https://content.example.com/cdproxy/",
    )
    return DriveClient(account, timeout=timeout)


def _mock_response(body: bytes) -> MagicMock:
    mock_response = MagicMock()
    mock_response.read.return_value = body
    mock_response.__enter__ = lambda s: s
    mock_response.__exit__ = MagicMock(return_value=False)
    return mock_response


def _http_error(code: int, body: bytes = b"{}") -> HTTPError:
    return HTTPError(
        url=f"{METADATA_URL}changes",
        code=code,
        msg="error",
        hdrs=MagicMock(),  # type: ignore[arg-type]
        fp=BytesIO(body),
    )


# ---------------------------------------------------------------------------
# post() tests
# ---------------------------------------------------------------------------


class TestDriveClientPost:
    def test_post_constructs_correct_url_header_and_body(self) -> None:
        client = _make_client()

        with patch("cloud_mirror.drive.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _mock_response(b'{"end": true}\n')
            result = client.post_changes({"maxNodes": 10})

        assert result == '{"end": true}\n'
        req = mock_urlopen.call_args[0][0]
        assert req.full_url == "https://cdws.example.com/drive/v1/changes"
        assert req.get_method() == "POST"
        assert req.get_header("Authorization") == "Bearer fake-token-abc"
        assert json.loads(req.data) == {"maxNodes": 10}
        assert mock_urlopen.call_args.kwargs["timeout"] == 30.0

    def test_adds_missing_trailing_slash_to_metadata_url(self) -> None:
        client = _make_client(metadata_url="https://cdws.example.com/drive/v1")

        with patch("cloud_mirror.drive.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _mock_response(b"")
            client.post("/changes", {})

        assert mock_urlopen.call_args[0][0].full_url == "https://cdws.example.com/drive/v1/changes"

    def test_reads_token_on_every_request(self) -> None:
        account = Account("u@example.com", "old-token", METADATA_URL, "")
        client = DriveClient(account)

        with patch("cloud_mirror.drive.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _mock_response(b"")
            account.access_token = "renewed-token"
            client.post_changes({})

        assert mock_urlopen.call_args[0][0].get_header("Authorization") == "Bearer renewed-token"

    @pytest.mark.parametrize("code", [401, 403])
    def test_auth_failure_raises_auth_expired(self, code: int) -> None:
        client = _make_client()
        body = json.dumps({"message": "Token has expired"}).encode()

        with (
            patch(
                "cloud_mirror.drive.client.urllib_request.urlopen",
                side_effect=_http_error(code, body),
            ),
            pytest.raises(AuthExpiredError) as exc_info,
        ):
            client.post_changes({})

        assert exc_info.value.status_code == code
        assert "Token has expired" in exc_info.value.message

    def test_server_error_raises_network_failure(self) -> None:
        client = _make_client()

        with (
            patch(
                "cloud_mirror.drive.client.urllib_request.urlopen",
                side_effect=_http_error(503, b"not json"),
            ),
            pytest.raises(NetworkFailureError) as exc_info,
        ):
            client.post_changes({})

        assert exc_info.value.status_code == 503
        assert not isinstance(exc_info.value, AuthExpiredError)

    def test_transport_error_raises_network_failure_without_status(self) -> None:
        client = _make_client()

        with (
            patch(
                "cloud_mirror.drive.client.urllib_request.urlopen",
                side_effect=URLError("Name or service not known"),
            ),
            pytest.raises(NetworkFailureError) as exc_info,
        ):
            client.post_changes({})

        assert exc_info.value.status_code is None
        assert "Name or service not known" in exc_info.value.message

    def test_timeout_raises_network_failure(self) -> None:
        client = _make_client()

        with (
            patch(
                "cloud_mirror.drive.client.urllib_request.urlopen",
                side_effect=socket.timeout("timed out"),
            ),
            pytest.raises(NetworkFailureError, match="timed out"),
        ):
            client.post_changes({})

    def test_undecodable_body_raises_malformed_response(self) -> None:
        client = _make_client()

        with (
            patch("cloud_mirror.drive.client.urllib_request.urlopen") as mock_urlopen,
            pytest.raises(MalformedResponseError, match="UTF-8") as exc_info,
        ):
            mock_urlopen.return_value = _mock_response(b'{"name": "\xff\xfe"}\n')
            client.post_changes({})

        assert exc_info.value.status_code is None
