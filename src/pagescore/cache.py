"""In-memory cache of page analyses keyed by URL and content fingerprint."""

import hashlib
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.parse import urlparse

from pagescore.config import CacheOptions
from pagescore.constants import (
    DEFAULT_CACHE_MAX_SIZE,
    DEFAULT_CACHE_TTL_SECONDS,
    FINGERPRINT_LENGTH,
)
from pagescore.document import Document
from pagescore.extractors.headings import HEADING_TAGS
from pagescore.models import PageAnalysis

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def normalize_url(url: str) -> str:
    """Cache key for a URL: scheme, host and path. Query and fragment are ignored."""
    parsed = urlparse(url)
    if not parsed.scheme:
        return url
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"


def fingerprint(document: Document) -> str:
    """Hash of title, meta description, heading count and body text length."""
    soup = document.soup

    title = soup.title.get_text(strip=True) if soup.title else ""
    description = ""
    for meta in soup.find_all('meta'):
        if (meta.get('name') or '').lower() == 'description':
            description = (meta.get('content') or '').strip()
            break

    heading_count = len(soup.find_all(HEADING_TAGS))
    text_length = len(document.visible_text())

    raw = f"{title}|{description}|{heading_count}|{text_length}"
    return hashlib.sha256(raw.encode('utf-8')).hexdigest()[:FINGERPRINT_LENGTH]


@dataclass
class CacheEntry:
    """A single cache entry with metadata."""
    url: str
    fingerprint: str
    analysis: PageAnalysis
    created_at: datetime
    expires_at: datetime
    hit_count: int = 0
    last_hit: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        """Check if this entry has expired at the given time."""
        return now >= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "url": self.url,
            "fingerprint": self.fingerprint,
            "analysis": self.analysis.to_dict(),
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "hit_count": self.hit_count,
            "last_hit": self.last_hit.isoformat() if self.last_hit else None,
        }


class CacheManager:
    """Memoizes PageAnalysis per URL while the document is unchanged.

    A hit needs an unexpired entry whose fingerprint matches the document's
    current fingerprint. Stale entries are dropped on lookup. The least
    recently used entry is evicted once max_size is exceeded.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        max_size: int = DEFAULT_CACHE_MAX_SIZE,
        clock: Clock = datetime.now,
    ):
        """
        Args:
            ttl_seconds: Lifetime of an entry
            max_size: Maximum number of entries
            clock: Source of the current time
        """
        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_size = max_size
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    @classmethod
    def from_options(cls, options: CacheOptions, clock: Clock = datetime.now) -> "CacheManager":
        return cls(ttl_seconds=options.ttl_seconds, max_size=options.max_size, clock=clock)

    def get(self, url: str, document: Document) -> Optional[PageAnalysis]:
        """Return the cached analysis for url if it is still valid for document.

        Args:
            url: Page URL
            document: Current document, used for the fingerprint check

        Returns:
            The identical cached PageAnalysis, or None
        """
        key = normalize_url(url)
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        now = self._clock()
        if entry.is_expired(now):
            logger.debug(f"Cache entry for {key} expired")
            del self._entries[key]
            self.misses += 1
            return None

        if entry.fingerprint != fingerprint(document):
            logger.debug(f"Cache entry for {key} no longer matches the document")
            del self._entries[key]
            self.misses += 1
            return None

        entry.hit_count += 1
        entry.last_hit = now
        self._entries.move_to_end(key)
        self.hits += 1
        logger.debug(f"Cache hit for {key}")
        return entry.analysis

    def set(
        self,
        url: str,
        analysis: PageAnalysis,
        document: Document,
        page_fingerprint: Optional[str] = None,
    ) -> CacheEntry:
        """Store analysis for url.

        Args:
            url: Page URL
            analysis: Analysis to memoize
            document: Document the analysis was extracted from
            page_fingerprint: Fingerprint taken when extraction started;
                computed from document when omitted

        Returns:
            The stored entry
        """
        key = normalize_url(url)
        now = self._clock()
        entry = CacheEntry(
            url=key,
            fingerprint=page_fingerprint or fingerprint(document),
            analysis=analysis,
            created_at=now,
            expires_at=now + self.ttl,
        )
        self._entries[key] = entry
        self._entries.move_to_end(key)
        self._enforce_max_size()
        return entry

    def invalidate(self, url: str) -> bool:
        """Drop the entry for url. Returns True if one existed."""
        return self._entries.pop(normalize_url(url), None) is not None

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def cleanup_expired(self) -> int:
        """Remove all expired entries and return how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self) -> Dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "ttl_seconds": self.ttl.total_seconds(),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / lookups if lookups else 0.0,
        }

    def export(self) -> List[CacheEntry]:
        """Unexpired entries, oldest first."""
        now = self._clock()
        return [entry for entry in self._entries.values() if not entry.is_expired(now)]

    def import_entries(self, entries: Iterable[CacheEntry]) -> int:
        """Add unexpired entries, keeping their original expiry.

        Returns:
            Number of entries imported
        """
        now = self._clock()
        imported = 0
        for entry in entries:
            if entry.is_expired(now):
                continue
            self._entries[normalize_url(entry.url)] = entry
            imported += 1
        self._enforce_max_size()
        return imported

    def _enforce_max_size(self) -> None:
        while len(self._entries) > self.max_size:
            key, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted {key} from analysis cache")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: str) -> bool:
        return normalize_url(url) in self._entries
