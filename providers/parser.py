"""
Query parser - natural language search -> structured profile search.
"""

import logging

from pydantic import ValidationError

from models import ParsedSearchQuery
from .base import ProviderError, QueryParser, QueryParseError
from .llm import LLMClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You turn people-search requests into structured JSON. Reply with one JSON object only."

PARSE_PROMPT = """Parse this job search query and create an optimized Google search query for finding LinkedIn profiles.

Input query: "{query}"

Return a JSON object with these keys:
- count: number of profiles wanted, 1-50 (default 10 if not specified)
- role: job title or role, e.g. "Software Engineer"
- location: city, country or region; may be a company name when no place is given (or null)
- country_code: 2-letter ISO code ONLY when location is geographic (Israel -> IL, United States -> US,
  UK -> GB, Germany -> DE); null when location is a company
- keywords: list of extra skills, technologies or companies
- google_query: site:linkedin.com/in "Job Title" "Location/Company" keywords

Be flexible: if the query mentions a company ("works at MiniMax", "at Google"), treat the company as
location/context with country_code null. Prefer a working search over strict adherence.

Examples:
- "5 AI Engineers in Israel with Python experience" ->
  {{"count": 5, "role": "AI Engineer", "location": "Israel", "country_code": "IL", "keywords": ["Python"],
    "google_query": "site:linkedin.com/in \\"AI Engineer\\" \\"Israel\\" Python"}}
- "Java developers at Google" ->
  {{"count": 10, "role": "Java Developer", "location": "Google", "country_code": null,
    "keywords": ["Java", "Google"], "google_query": "site:linkedin.com/in \\"Java Developer\\" Google"}}
"""


class LLMQueryParser(QueryParser):
    """Uses the LLM to extract count, role, location and a Google query."""

    def __init__(self, llm: LLMClient):
        self.llm = llm

    def parse(self, query: str) -> ParsedSearchQuery:
        try:
            data = self.llm.complete_json(SYSTEM_PROMPT, PARSE_PROMPT.format(query=query))
        except ProviderError as e:
            logger.error("Error parsing search query %r: %s", query, e)
            raise QueryParseError(f"Failed to parse search query: {e}") from e

        # Nulls fall back to model defaults
        data = {k: v for k, v in data.items() if v is not None}
        if not data.get("google_query"):
            data["google_query"] = self._fallback_google_query(data, query)

        try:
            parsed = ParsedSearchQuery.model_validate(data)
        except ValidationError as e:
            raise QueryParseError(f"Failed to parse search query: {e.errors()[0]['msg']}") from e

        logger.info(
            "Parsed query %r -> role=%r count=%d country=%s",
            query, parsed.role, parsed.count, parsed.country_code,
        )
        return parsed

    @staticmethod
    def _fallback_google_query(data: dict, query: str) -> str:
        terms = [f'"{data[k]}"' for k in ("role", "location") if data.get(k)]
        terms.extend(data.get("keywords") or [])
        return "site:linkedin.com/in " + (" ".join(terms) if terms else query)
