"""
Cache-aside resolver - candidate references in, profile records out.

    1. normalize candidates, first-seen order, drop duplicates/unusable
    2. one batch read from the store
    3. split into hits and misses
    4. at most one batched fetch for the misses (original references)
    5. write-through every fetched record, then include it
    6. hits + fetched, with counts

Store and provider failures degrade the result instead of failing it.
"""

import logging
from collections import OrderedDict
from typing import Iterable, Optional

from models import ProfileRecord, ResolutionResult, normalize_identifier
from providers.base import FetchProvider
from repositories.base import ProfileRepository
from .inflight import InflightRegistry

logger = logging.getLogger(__name__)


class CacheAsideResolver:

    def __init__(self, profiles: ProfileRepository, fetch_provider: FetchProvider,
                 inflight: Optional[InflightRegistry] = None):
        self.profiles = profiles
        self.fetch_provider = fetch_provider
        self.inflight = inflight

    def resolve(self, candidates: Iterable[str]) -> ResolutionResult:
        candidates = list(candidates)
        references = self._normalize(candidates)
        identifiers = list(references)
        dropped = len(candidates) - len(identifiers)

        cached = self._read_cache(identifiers)
        hits = [cached[i] for i in identifiers if i in cached]
        misses = [i for i in identifiers if i not in cached]

        logger.info(
            "Resolving %d candidates: %d cached, %d to fetch, %d dropped",
            len(candidates), len(hits), len(misses), dropped,
        )

        fetched, fetch_error = [], None
        if misses:
            fetched, fetch_error = self._fetch_misses(misses, references)

        return ResolutionResult(
            profiles=hits + fetched,
            cached=len(hits),
            fetched=len(fetched),
            requested=len(identifiers),
            dropped=dropped,
            fetch_error=fetch_error,
        )

    @staticmethod
    def _normalize(candidates: list) -> "OrderedDict[str, str]":
        """identifier -> first raw reference that produced it."""
        references = OrderedDict()
        for raw in candidates:
            identifier = normalize_identifier(raw)
            if identifier is None:
                logger.debug("Dropping unusable reference: %r", raw)
                continue
            if identifier not in references:
                references[identifier] = raw.strip()
        return references

    def _read_cache(self, identifiers: list[str]) -> dict[str, ProfileRecord]:
        if not identifiers:
            return {}
        try:
            return self.profiles.get_many(identifiers)
        except Exception as e:
            logger.warning("Cache read failed, treating %d identifiers as misses: %s", len(identifiers), e)
            return {}

    def _fetch_misses(self, misses: list[str], references: dict) -> tuple[list[ProfileRecord], Optional[str]]:
        if self.inflight is None:
            owned, waiting = misses, {}
        else:
            owned, waiting = self.inflight.claim(misses)

        by_id: dict[str, ProfileRecord] = {}
        extra: list[ProfileRecord] = []
        fetch_error = None

        if owned:
            try:
                try:
                    batch = self._fetch_batch([references[i] for i in owned])
                except Exception as e:
                    logger.exception("Batch fetch of %d profiles failed", len(owned))
                    fetch_error = str(e) or type(e).__name__
                    batch = []

                seen = set()
                for record in batch:
                    if record.identifier in seen:
                        continue
                    seen.add(record.identifier)
                    self._write_through(record)
                    if record.identifier in references:
                        by_id[record.identifier] = record
                    else:
                        extra.append(record)
            finally:
                # Waiters must never hang on a future nobody will settle
                if self.inflight is not None:
                    self.inflight.settle(owned, by_id)

        for identifier, future in waiting.items():
            record = self.inflight.wait(identifier, future)
            if record is not None:
                by_id[identifier] = record

        # Input order for everything we asked for, then anything unexpected
        fetched = [by_id[i] for i in misses if i in by_id] + extra
        return fetched, fetch_error

    def _fetch_batch(self, refs: list[str]) -> list[ProfileRecord]:
        logger.info("Fetching %d uncached profiles in batch", len(refs))
        return list(self.fetch_provider.fetch_batch(refs) or [])

    def _write_through(self, record: ProfileRecord) -> None:
        try:
            self.profiles.put(record)
        except Exception as e:
            logger.warning("Cache write failed for %s, returning it uncached: %s", record.identifier, e)
