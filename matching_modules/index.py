"""
Reverse index from filename tokens to candidate files, plus its time-boxed cache.
"""

import time
import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

from .config import INDEX_CACHE_TTL_SECONDS
from .models import CandidateFile
from .sources import as_source
from .utils import extract_numeric_tokens

logger = logging.getLogger(__name__)


class CandidateIndex:
    """
    Token -> files mapping for one source.
    Buckets keep discovery order. The index is never modified after build().
    """

    def __init__(self, source, buckets: Dict[str, Tuple[CandidateFile, ...]],
                 files: Tuple[CandidateFile, ...], built_at: float):
        self.source = source
        self._buckets = buckets
        self.files = files
        self.built_at = built_at

    @classmethod
    def build(cls, source, clock: Callable[[], float] = time.monotonic) -> "CandidateIndex":
        """
        Walk ``source`` and index every discovered file under each of its tokens.

        Args:
            source: Candidate source or a folder path

        Returns:
            A fully built index
        """
        source = as_source(source)
        logger.info(f"Building PDF index for: {source.key}")
        started = time.perf_counter()

        buckets: Dict[str, List[CandidateFile]] = {}
        files: List[CandidateFile] = []
        for candidate in source.iter_files():
            files.append(candidate)
            for token in extract_numeric_tokens(candidate.name):
                buckets.setdefault(token, []).append(candidate)

        elapsed = time.perf_counter() - started
        logger.info(f"Indexed {len(files)} PDFs under {len(buckets)} tokens in {elapsed:.2f}s")

        return cls(
            source=source,
            buckets={token: tuple(paths) for token, paths in buckets.items()},
            files=tuple(files),
            built_at=clock(),
        )

    def lookup(self, token: str) -> Tuple[CandidateFile, ...]:
        return self._buckets.get(token, ())

    def __contains__(self, token: str) -> bool:
        return token in self._buckets

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def token_count(self) -> int:
        return len(self._buckets)


class IndexCache:
    """
    Single-slot cache holding the index of the most recently searched source.

    A cached index is reused while it is younger than ``ttl`` seconds and
    belongs to the requested source; otherwise it is rebuilt and swapped in
    once the walk completes.
    """

    def __init__(self, ttl: float = INDEX_CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._index: Optional[CandidateIndex] = None
        self._lock = threading.Lock()

    def get(self, source) -> CandidateIndex:
        source = as_source(source)
        with self._lock:
            cached = self._index
            if cached is not None and cached.source.key == source.key \
                    and self.clock() - cached.built_at < self.ttl:
                logger.info("Using cached PDF index")
                return cached

            index = CandidateIndex.build(source, clock=self.clock)
            self._index = index
            return index

    def clear(self) -> None:
        with self._lock:
            self._index = None
        logger.info("PDF index cache cleared")

    invalidate = clear

    @property
    def current(self) -> Optional[CandidateIndex]:
        return self._index
