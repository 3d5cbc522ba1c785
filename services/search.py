"""
Search service - query text to enriched profiles.

    query -> parser -> structured query -> search provider -> candidates
          -> cache-aside resolver -> profiles
"""

import logging

from models import SearchRequest, SearchResponse
from providers.base import QueryParser, SearchProvider
from .resolver import CacheAsideResolver

logger = logging.getLogger(__name__)


class SearchService:

    def __init__(self, parser: QueryParser, search_provider: SearchProvider, resolver: CacheAsideResolver):
        self.parser = parser
        self.search_provider = search_provider
        self.resolver = resolver

    def search(self, query) -> SearchResponse:
        """
        Run the full search pipeline.

        Raises pydantic.ValidationError for bad input (before any call out)
        and ProviderError when parsing or candidate search fails. Fetch
        failures don't raise; they shrink the result.
        """
        request = SearchRequest(query=query)

        parsed = self.parser.parse(request.query)
        candidates = self.search_provider.find_profiles(parsed.google_query, parsed.count, parsed.country_code)

        if not candidates:
            logger.info("No candidates for %r", request.query)
            return SearchResponse()

        result = self.resolver.resolve(candidates)
        logger.info(
            "Search %r: %d profiles (%d cached, %d fetched)",
            request.query, result.count, result.cached, result.fetched,
        )
        return SearchResponse.from_resolution(result)
