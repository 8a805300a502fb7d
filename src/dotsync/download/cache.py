"""
HTTP Response Cache

Stores fetched response bodies on disk, one body file plus one JSON metadata file
per URL, so repeated runs within the staleness window avoid hitting rate-limited
APIs again. Entries are plain overwrites; there is no locking.
"""

import hashlib
import json
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import urlsplit, urlunsplit

import platformdirs
import requests

from dotsync.constants import (
    APP_NAME,
    CACHE_METADATA_SUFFIX,
    CACHE_SKIPPED_HEADERS,
    CACHE_STALE_AFTER_SECONDS,
    CACHE_URL_TOO_LONG,
)
from dotsync.exceptions import CacheError, CacheNotFoundError
from dotsync.log_utils import logger

CACHE_STALE_AFTER = timedelta(seconds=CACHE_STALE_AFTER_SECONDS)

_NON_WORD_RX = re.compile(r"\W")


def _parse_iso_datetime_utc(value: object) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp and normalize it to UTC.

    Returns:
        A timezone-aware datetime in UTC if parsing succeeds, `None` otherwise.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def strip_credentials(url: str) -> str:
    """
    Remove any username/password component from a URL.

    The network location is always rebuilt from the lowercased host (IPv6 hosts
    keep their brackets) and the port, so a URL serializes the same with or
    without credentials.
    """
    parts = urlsplit(url)
    if not parts.netloc:
        return url
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    if parts.port is not None:
        host = f"{host}:{parts.port}"
    return urlunsplit(parts._replace(netloc=host))


def url_cache_key(url: str) -> str:
    """
    Derive a filesystem-safe cache key from a URL.

    Credentials are stripped first. URLs longer than CACHE_URL_TOO_LONG characters
    are truncated and suffixed with "_" plus the SHA-256 hex digest of the whole
    credential-free URL. Every non-word character is then replaced with "_".

    Parameters:
        url (str): The request URL.

    Returns:
        str: The cache key, e.g. "https___example_com_" for "https://example.com/".
    """
    clean = strip_credentials(url)
    key = clean
    if len(key) > CACHE_URL_TOO_LONG:
        digest = hashlib.sha256(clean.encode("utf-8")).hexdigest()
        key = f"{key[:CACHE_URL_TOO_LONG]}_{digest}"
    return _NON_WORD_RX.sub("_", key)


@dataclass
class CachedResponse:
    """A response previously written to the cache."""

    url: str
    fetched_at: datetime
    headers: List[str] = field(default_factory=list)
    content_length: int = 0
    body_path: Path = field(default_factory=Path)

    def read_body(self) -> bytes:
        """
        Read the cached body.

        Raises:
            CacheNotFoundError: If the body file has disappeared or cannot be read.
        """
        try:
            return self.body_path.read_bytes()
        except OSError as e:
            raise CacheNotFoundError(self.url, details=str(e)) from e

    def age(self, now: Optional[datetime] = None) -> timedelta:
        now = now or datetime.now(timezone.utc)
        return now - self.fetched_at

    def is_stale(
        self,
        now: Optional[datetime] = None,
        max_age: timedelta = CACHE_STALE_AFTER,
    ) -> bool:
        """Whether the entry is at least `max_age` old and must be refetched."""
        return self.age(now) >= max_age


class HttpCache:
    """
    On-disk cache of HTTP responses keyed by URL.

    The cache never decides freshness itself; callers check
    `CachedResponse.is_stale()` and refetch when needed.
    """

    def __init__(self, cache_dir: Optional[Union[str, Path]] = None):
        """
        Parameters:
            cache_dir: Directory holding cached entries. Defaults to the platform user cache directory for dotsync.
        """
        self.cache_dir = Path(cache_dir or platformdirs.user_cache_dir(APP_NAME))

    def body_path(self, url: str) -> Path:
        return self.cache_dir / url_cache_key(url)

    def metadata_path(self, url: str) -> Path:
        return self.cache_dir / f"{url_cache_key(url)}{CACHE_METADATA_SUFFIX}"

    def load(self, url: str) -> CachedResponse:
        """
        Load the cached metadata for a URL.

        Returns:
            CachedResponse: Metadata plus a handle to the cached body.

        Raises:
            CacheNotFoundError: If there is no entry, or the metadata is unreadable or malformed.
        """
        metadata_path = self.metadata_path(url)
        body_path = self.body_path(url)
        if not metadata_path.is_file() or not body_path.is_file():
            raise CacheNotFoundError(url)

        try:
            with open(metadata_path, "r", encoding="utf-8") as f:
                metadata = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.debug("Unreadable cache metadata %s: %s", metadata_path, e)
            raise CacheNotFoundError(url, details=str(e)) from e

        if not isinstance(metadata, dict):
            raise CacheNotFoundError(url, details="metadata is not an object")

        fetched_at = _parse_iso_datetime_utc(metadata.get("date"))
        if fetched_at is None:
            raise CacheNotFoundError(url, details="metadata has no valid date")

        headers = metadata.get("headers", [])
        if not isinstance(headers, list):
            headers = []

        try:
            content_length = int(metadata.get("content_length", 0) or 0)
        except (TypeError, ValueError):
            content_length = 0

        return CachedResponse(
            url=url,
            fetched_at=fetched_at,
            headers=[str(h) for h in headers],
            content_length=content_length,
            body_path=body_path,
        )

    def store(self, url: str, response: requests.Response) -> CachedResponse:
        """
        Write a response's body and metadata, replacing any previous entry for the URL.

        Credential-bearing headers (authorization, cookie, set-cookie) are not written.

        Raises:
            CacheError: If the entry cannot be written.
        """
        body = response.content or b""
        headers = [
            f"{name}: {value}"
            for name, value in response.headers.items()
            if name.lower() not in CACHE_SKIPPED_HEADERS
        ]
        fetched_at = datetime.now(timezone.utc)
        metadata = {
            "content_length": len(body),
            "date": fetched_at.isoformat(),
            "headers": headers,
        }

        body_path = self.body_path(url)
        metadata_path = self.metadata_path(url)
        try:
            metadata_path.parent.mkdir(parents=True, exist_ok=True)
            body_path.write_bytes(body)
            with open(metadata_path, "w", encoding="utf-8") as f:
                json.dump(metadata, f, indent=2)
        except OSError as e:
            raise CacheError(f"Could not write cache entry for {url}", str(e)) from e

        logger.debug("Cached %d bytes for %s", len(body), url)
        return CachedResponse(
            url=url,
            fetched_at=fetched_at,
            headers=headers,
            content_length=len(body),
            body_path=body_path,
        )

    def clear(self) -> int:
        """
        Remove every file in the cache directory.

        Returns:
            int: Number of files removed.
        """
        if not self.cache_dir.is_dir():
            return 0
        removed = 0
        for entry in self.cache_dir.iterdir():
            if not entry.is_file():
                continue
            try:
                os.remove(entry)
                removed += 1
            except OSError as e:
                logger.warning(f"Failed to remove cache file {entry}: {e}")
        logger.debug("Removed %d cache files from %s", removed, self.cache_dir)
        return removed
