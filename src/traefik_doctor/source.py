"""
Config source adapter.

Obtains the raw dynamic configuration either from the control plane over HTTP
(one bounded request, no retry) or from a local file.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests


CHUNK_SIZE = 8192


class FetchError(Exception):
    """Raised when the configuration could not be retrieved."""
    pass


class HTTPStatusError(FetchError):
    """Raised when the endpoint answers with a status other than 200."""

    def __init__(self, url: str, status_code: int, byte_count: int):
        self.url = url
        self.status_code = status_code
        self.byte_count = byte_count
        super().__init__(
            f"Endpoint returned HTTP {status_code} ({byte_count} bytes), "
            f"expected HTTP 200 from {url}"
        )


class EmptyPayloadError(FetchError):
    """Raised when the configuration was retrieved but has no content."""
    pass


@dataclass(frozen=True)
class RawPayload:
    """Raw configuration bytes plus where they came from."""
    content: bytes
    source: str
    status_code: Optional[int] = None
    content_type: Optional[str] = None

    @property
    def byte_count(self) -> int:
        return len(self.content)

    @property
    def text(self) -> str:
        """Body decoded as UTF-8, undecodable bytes replaced."""
        return self.content.decode("utf-8", errors="replace")


def build_config_url(base_url: str, endpoint: str) -> str:
    """Join base URL and endpoint path with exactly one slash."""
    return f"{base_url.rstrip('/')}/{endpoint.lstrip('/')}"


def fetch_config(url: str, timeout: int = 20, connect_timeout: int = 5) -> RawPayload:
    """
    Fetch dynamic config with a single GET request.

    The body is streamed so that ``timeout`` bounds the whole request,
    body download included, not just the gap between two reads.

    Args:
        url: Full config URL
        timeout: Total request timeout in seconds
        connect_timeout: Connect timeout in seconds

    Returns:
        RawPayload with the response body

    Raises:
        FetchError: Connection failure or timeout
        HTTPStatusError: Any status other than 200
        EmptyPayloadError: HTTP 200 with an empty body
    """
    deadline = time.monotonic() + timeout

    try:
        response = requests.get(url, timeout=(connect_timeout, timeout), stream=True)
        try:
            content = _read_body(response, url, timeout, deadline)
        finally:
            response.close()
    except requests.exceptions.ConnectTimeout as e:
        raise FetchError(
            f"Timed out connecting to {url} after {connect_timeout}s (connect timeout): {e}"
        )
    except requests.exceptions.Timeout as e:
        raise FetchError(f"Timed out fetching {url} after {timeout}s: {e}")
    except requests.exceptions.ConnectionError as e:
        raise FetchError(f"Could not connect to {url}: {e}")
    except requests.exceptions.RequestException as e:
        raise FetchError(f"Could not fetch {url}: {e}")

    if response.status_code != 200:
        raise HTTPStatusError(url, response.status_code, len(content))

    if not content:
        raise EmptyPayloadError(
            f"Endpoint returned HTTP 200 but body is empty: {url}"
        )

    return RawPayload(
        content=content,
        source=url,
        status_code=response.status_code,
        content_type=response.headers.get("Content-Type"),
    )


def _read_body(response, url: str, timeout: int, deadline: float) -> bytes:
    """Read a streamed body, giving up once the total deadline passes."""
    chunks = []
    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
        if time.monotonic() > deadline:
            raise FetchError(f"Timed out fetching {url}: exceeded total timeout of {timeout}s")
        chunks.append(chunk)
    return b"".join(chunks)


def read_config_file(path) -> RawPayload:
    """
    Read a dynamic config file from disk.

    An empty file is returned as-is; the parser decides what it means.

    Raises:
        FetchError: File missing or unreadable
    """
    config_path = Path(path)

    if not config_path.exists():
        raise FetchError(f"Config file not found: {config_path}")
    if not config_path.is_file():
        raise FetchError(f"Config path is not a file: {config_path}")

    try:
        content = config_path.read_bytes()
    except OSError as e:
        raise FetchError(f"Cannot read {config_path}: {e}")

    return RawPayload(content=content, source=str(config_path))


def save_payload(payload: RawPayload, path) -> Path:
    """Write the raw body to path, creating parent directories."""
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(payload.content)
    return output
