"""
Image source

Resolves a photo reference (http(s) URL, data URL, or local path) to raw bytes.
"""

from __future__ import annotations

import base64
import binascii
import logging
from pathlib import Path

import httpx

from meter_lab_core.domain.errors import TransportError

logger = logging.getLogger(__name__)


class ImageSource:
    """Fetch photo bytes by reference"""

    def __init__(self, timeout_seconds: float = 30.0, http_client: httpx.Client | None = None) -> None:
        self._http = http_client or httpx.Client(timeout=timeout_seconds, follow_redirects=True)

    def fetch(self, ref: str) -> bytes:
        """
        Fetch the bytes behind a reference

        Args:
            ref: http(s) URL, data URL (data:image/...;base64,...) or filesystem path

        Returns:
            Raw image bytes

        Raises:
            TransportError: If the reference cannot be read
        """
        if ref.startswith(("http://", "https://")):
            try:
                response = self._http.get(ref)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise TransportError(f"Failed to fetch {ref}: {e}") from e
            return response.content

        if ref.startswith("data:"):
            _, _, payload = ref.partition(",")
            try:
                return base64.b64decode(payload, validate=True)
            except (binascii.Error, ValueError) as e:
                raise TransportError(f"Invalid data URL: {e}") from e

        try:
            return Path(ref).read_bytes()
        except (OSError, ValueError) as e:
            raise TransportError(f"Failed to read {ref}: {e}") from e

    def try_fetch(self, ref: str) -> bytes | None:
        """Fetch the bytes behind a reference, returning None on failure"""
        try:
            return self.fetch(ref)
        except TransportError as e:
            logger.warning("Skipping unreadable image: %s", e)
            return None

    def close(self) -> None:
        self._http.close()
