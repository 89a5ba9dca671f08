"""
AssetCodec: every byte-level capability a bundle needs.

Fetching remote bytes, base64 data-URL encoding and decoding, and
recovering a file extension from magic bytes all live here so that
entities stay plain data. Pass a different codec to Bundle to change
how bytes are fetched (for example an authenticated httpx client).

    codec = AssetCodec()
    raw   = await codec.fetch("https://example.com/bull.json")
    url   = codec.encode(png_bytes)        # "data:image/png;base64,..."
    codec.detect_extension(url)            # "png"
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Optional

import httpx

from lottie_bundle import config
from lottie_bundle.core.errors import AssetDecodeError, FetchError
from lottie_bundle.core.vocabulary import (
    DEFAULT_EXTENSION,
    EXTENSION_TO_MIME,
    MAGIC_SIGNATURES,
    MIME_TO_EXTENSION,
)

logger = logging.getLogger(__name__)


class AssetCodec:
    """Fetch and encode asset bytes.

    Args:
        timeout:   Seconds before a fetch gives up. Defaults to
                   config.FETCH_TIMEOUT at call time.
        headers:   Extra HTTP headers sent with every fetch.
        transport: Optional httpx transport (e.g. httpx.MockTransport in tests).
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._timeout = timeout
        self._headers = dict(headers or {})
        self._transport = transport

    @property
    def timeout(self) -> float:
        return self._timeout if self._timeout is not None else config.FETCH_TIMEOUT

    # ── Network ─────────────────────────────────────────────

    async def fetch_response(self, url: str) -> httpx.Response:
        """GET a url and return the response. Raises FetchError on any failure."""
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as e:
            raise FetchError(str(url), f"invalid url ({e})")
        if parsed.scheme not in ("http", "https"):
            raise FetchError(str(url), "only http and https urls are supported")

        logger.debug(f"Fetching {url}")
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True, transport=self._transport,
            ) as client:
                resp = await client.get(url, headers=self._headers)
                resp.raise_for_status()
                return resp
        except httpx.TimeoutException:
            raise FetchError(url, f"timed out after {self.timeout}s")
        except httpx.HTTPStatusError as e:
            raise FetchError(url, f"HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            raise FetchError(url, str(e) or e.__class__.__name__)

    async def fetch(self, url: str) -> bytes:
        resp = await self.fetch_response(url)
        return resp.content

    async def fetch_json(self, url: str) -> Any:
        content = await self.fetch(url)
        try:
            return json.loads(content)
        except (ValueError, UnicodeDecodeError) as e:
            raise FetchError(url, f"response is not valid JSON ({e})")

    # ── Data URLs ───────────────────────────────────────────

    @staticmethod
    def is_data_url(value: Any) -> bool:
        return isinstance(value, str) and value.startswith("data:") and "," in value

    def encode(self, data: bytes, mime: Optional[str] = None) -> str:
        """Encode raw bytes as a base64 data URL."""
        mime = mime or self.mime_type(data) or EXTENSION_TO_MIME[DEFAULT_EXTENSION]
        return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"

    def decode(self, data_url: str) -> bytes:
        """Decode a data URL (or bare base64 string) back to raw bytes."""
        payload = data_url[data_url.index(",") + 1:] if "," in data_url else data_url
        try:
            return base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as e:
            raise AssetDecodeError(f"Asset data is not valid base64: {e}")

    # ── Type detection ──────────────────────────────────────

    @staticmethod
    def mime_type(data: bytes) -> Optional[str]:
        """Detect a MIME type from magic bytes, or None."""
        head = bytes(data[:12])
        if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
            return "image/webp"
        for signature, mime in MAGIC_SIGNATURES:
            if head.startswith(signature):
                return mime
        return None

    def detect_extension(self, data_url: str) -> str:
        """Recover a file extension for an asset held as a data URL.

        Magic bytes win. Otherwise the data-URL header is consulted, and
        "png" is the last resort.
        """
        mime = self.mime_type(self.decode(data_url)[:12])
        if mime:
            return MIME_TO_EXTENSION.get(mime, DEFAULT_EXTENSION)

        header = data_url.split(";", 1)[0] if data_url.startswith("data:") else ""
        declared = header[len("data:"):]
        if declared in MIME_TO_EXTENSION:
            return MIME_TO_EXTENSION[declared]
        subtype = declared.split("/", 1)[1] if "/" in declared else ""
        if subtype in EXTENSION_TO_MIME:
            return subtype
        return DEFAULT_EXTENSION

    def mime_for_file(self, file_name: str, data: bytes) -> str:
        """MIME type used when re-encoding packed bytes into a data URL."""
        detected = self.mime_type(data)
        if detected:
            return detected
        ext = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
        return EXTENSION_TO_MIME.get(ext, EXTENSION_TO_MIME[DEFAULT_EXTENSION])
