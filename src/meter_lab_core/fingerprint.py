"""
Content Fingerprinting

Exact and perceptual identity of uploaded images.

- content hash: SHA-256 of the raw bytes, truncated to 32 hex characters
- perceptual hash: 32x32 grayscale average hash, one bit per pixel
  (pixel > mean), packed MSB-first into 256 hex characters
"""

from __future__ import annotations

import hashlib
import io
import logging
from collections.abc import Iterable

import numpy as np
from PIL import Image, UnidentifiedImageError

from meter_lab_core.domain.constants import CONTENT_HASH_LENGTH, PHASH_GRID_SIZE
from meter_lab_core.domain.entities import Photo
from meter_lab_core.domain.errors import DecodeError
from meter_lab_core.domain.value_objects import Fingerprint

logger = logging.getLogger(__name__)


def content_hash(data: bytes) -> str:
    """SHA-256 hex digest of the bytes, truncated to 32 characters"""
    return hashlib.sha256(data).hexdigest()[:CONTENT_HASH_LENGTH]


def perceptual_hash(data: bytes) -> str:
    """
    Compute the average hash of an encoded image

    Args:
        data: Encoded image bytes (any format Pillow can open)

    Returns:
        256-character lowercase hex string

    Raises:
        DecodeError: If the bytes cannot be decoded as an image
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            gray = image.convert("L").resize(
                (PHASH_GRID_SIZE, PHASH_GRID_SIZE), resample=Image.Resampling.BILINEAR
            )
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise DecodeError(f"Cannot decode image: {e}") from e

    pixels = np.asarray(gray, dtype=np.float64)
    bits = (pixels > pixels.mean()).astype(np.uint8).flatten()
    return np.packbits(bits).tobytes().hex()


def hamming_distance(a: str, b: str) -> int:
    """
    Number of differing bits between two perceptual hashes

    Raises:
        ValueError: If the hashes differ in length or are not hex
    """
    if len(a) != len(b):
        raise ValueError(f"Perceptual hashes differ in length ({len(a)} != {len(b)})")
    return (int(a, 16) ^ int(b, 16)).bit_count()


def fingerprint(data: bytes) -> Fingerprint:
    """Content and perceptual hash of an image (raises DecodeError)"""
    return Fingerprint(content_hash=content_hash(data), perceptual_hash=perceptual_hash(data))


def safe_fingerprint(data: bytes) -> Fingerprint:
    """Fingerprint that degrades to content hash only when the image cannot be decoded"""
    try:
        return fingerprint(data)
    except DecodeError as e:
        logger.warning("Skipping perceptual hash: %s", e)
        return Fingerprint(content_hash=content_hash(data), perceptual_hash=None)


def find_near_duplicates(
    phash: str,
    candidates: Iterable[Photo],
    max_distance: int,
) -> list[tuple[Photo, int]]:
    """
    Perceptual pre-filter over stored photos

    Args:
        phash: Perceptual hash of the new image
        candidates: Photos to compare against (photos without a hash are ignored)
        max_distance: Inclusive Hamming distance bound

    Returns:
        (photo, distance) pairs within the bound, closest first
    """
    matches = []
    for photo in candidates:
        if not photo.perceptual_hash or len(photo.perceptual_hash) != len(phash):
            continue
        distance = hamming_distance(phash, photo.perceptual_hash)
        if distance <= max_distance:
            matches.append((photo, distance))
    matches.sort(key=lambda pair: pair[1])
    return matches


def register_photo(
    store,
    data: bytes,
    image_ref: str,
    *,
    folder_id: str | None = None,
    ground_truth: dict | None = None,
    dedup: bool = True,
) -> tuple[Photo, bool]:
    """
    Fingerprint and persist an uploaded photo

    Byte-identical uploads resolve to the existing photo. The lookup and the
    insert are separate store calls, so concurrent uploads of the same bytes
    can still produce two rows.

    Args:
        store: ExperimentStore
        data: Encoded image bytes
        image_ref: Where the bytes live (URL or path)
        folder_id: Folder the photo belongs to
        ground_truth: Expected extraction result
        dedup: Whether to look up an existing photo by content hash

    Returns:
        (photo, created): created is False when an existing photo was returned
    """
    fp = safe_fingerprint(data)

    if dedup:
        existing = store.find_photo_by_hash(fp.content_hash)
        if existing is not None:
            logger.info("Duplicate upload of %s resolved to photo %s", image_ref, existing.id)
            return existing, False

    photo = Photo(
        image_ref=image_ref,
        content_hash=fp.content_hash,
        perceptual_hash=fp.perceptual_hash,
        ground_truth=ground_truth,
        folder_id=folder_id,
    )
    return store.save_photo(photo), True
