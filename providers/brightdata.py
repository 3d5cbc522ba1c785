"""
Bright Data adapters - Google search for profile URLs and batch profile scraping.

Search goes through the Web Unlocker (/request) with Google's JSON output;
profiles come from the LinkedIn people dataset (/datasets/v3).
"""

import json
import logging
import time
from typing import Optional
from urllib.parse import quote_plus

import requests

from models import ProfileRecord, normalize_identifier, is_profile_url, clean_profile_url
from .base import (
    FetchProvider,
    SearchProvider,
    ProviderAuthError,
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
)

logger = logging.getLogger(__name__)

API_BASE = "https://api.brightdata.com"
REQUEST_URL = f"{API_BASE}/request"
RESULTS_PER_PAGE = 10


def build_google_search_url(query: str, page: int = 0, country_code: str = None) -> str:
    """Google search URL with JSON output and optional geolocation."""
    url = f"https://www.google.com/search?q={quote_plus(query)}&start={page * RESULTS_PER_PAGE}&brd_json=1"
    if country_code:
        url += f"&gl={country_code.upper()}"
    return url


def extract_profile_urls(search_results: dict) -> list[str]:
    """Clean profile URLs from Google organic results, in result order."""
    urls = []
    for result in search_results.get("organic") or []:
        link = result.get("link") if isinstance(result, dict) else None
        if is_profile_url(link):
            urls.append(clean_profile_url(link))
    logger.info("Extracted %d profile URLs", len(urls))
    return urls


def _first(row: dict, *keys):
    for key in keys:
        value = row.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def _as_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


MODELED_FIELDS = {
    "id", "linkedin_id", "url", "input_url", "name", "position", "headline", "city",
    "location", "country_code", "about", "current_company", "current_company_name",
    "avatar", "followers", "connections", "experience", "education", "input",
}


def row_to_profile(row: dict) -> Optional[ProfileRecord]:
    """Map one dataset row to a ProfileRecord. None if unusable."""
    if not isinstance(row, dict) or row.get("error"):
        return None

    row_input = row.get("input")
    input_url = row.get("input_url") or (row_input.get("url") if isinstance(row_input, dict) else None)
    url = row.get("url") or input_url
    identifier = normalize_identifier(url) or normalize_identifier(input_url)
    if not identifier:
        raw_id = _first(row, "linkedin_id", "id")
        identifier = str(raw_id).strip().lower() if raw_id else None
    if not identifier:
        return None

    company = row.get("current_company")
    if isinstance(company, dict):
        company = company.get("name")

    return ProfileRecord(
        identifier=identifier,
        url=clean_profile_url(url) if is_profile_url(url) else (url or ""),
        name=row.get("name"),
        headline=_first(row, "position", "headline"),
        location=_first(row, "city", "location"),
        country_code=row.get("country_code"),
        about=row.get("about"),
        current_company=company or row.get("current_company_name"),
        avatar=row.get("avatar"),
        followers=_as_int(row.get("followers")),
        connections=_as_int(row.get("connections")),
        experience=[e for e in (row.get("experience") or []) if isinstance(e, dict)],
        education=[e for e in (row.get("education") or []) if isinstance(e, dict)],
        details={k: v for k, v in row.items() if k not in MODELED_FIELDS},
    )


class BrightDataClient:
    """Authenticated HTTP access to the Bright Data API."""

    def __init__(self, api_token: str, unlocker_zone: str = "unblocker", timeout: int = 30,
                 session: requests.Session = None):
        self.api_token = api_token
        self.unlocker_zone = unlocker_zone
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings) -> "BrightDataClient":
        return cls(settings.brightdata_api_token, settings.brightdata_unlocker_zone, settings.http_timeout)

    def _headers(self) -> dict:
        if not self.api_token:
            raise ProviderAuthError("BRIGHTDATA_API_TOKEN is not set in environment variables")
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }

    def request(self, method: str, url: str, **kwargs) -> requests.Response:
        headers = self._headers()
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            raise ProviderTimeoutError("brightdata", self.timeout) from e
        except requests.RequestException as e:
            raise ProviderError(f"Bright Data request failed: {e}") from e

        if response.status_code == 401:
            raise ProviderAuthError("Bright Data rejected the API token")
        if response.status_code >= 400:
            raise ProviderResponseError("brightdata", response.status_code, response.text[:200])
        return response

    def search_google(self, query: str, page: int = 0, country_code: str = None) -> dict:
        """Run a Google search through the unlocker zone, return its JSON."""
        response = self.request("POST", REQUEST_URL, json={
            "url": build_google_search_url(query, page, country_code),
            "zone": self.unlocker_zone,
            "format": "raw",
        })
        try:
            data = json.loads(response.text)
        except json.JSONDecodeError as e:
            raise ProviderResponseError("brightdata", response.status_code, "search response is not JSON") from e
        if not isinstance(data, dict):
            raise ProviderResponseError("brightdata", response.status_code, "search response is not a JSON object")

        logger.info("Found %d organic results for query %r", len(data.get("organic") or []), query)
        return data


class BrightDataSearchProvider(SearchProvider):
    """Google -> profile URLs."""

    def __init__(self, client: BrightDataClient):
        self.client = client

    def find_profiles(self, google_query: str, max_results: int = 10,
                      country_code: Optional[str] = None) -> list[str]:
        results = self.client.search_google(google_query, 0, country_code)
        return extract_profile_urls(results)[:max_results]


class BrightDataFetchProvider(FetchProvider):
    """
    Batch scrape of profile pages through the people-profile dataset.

    One POST covers the whole batch. Large batches come back as a snapshot
    id (HTTP 202) which is polled until ready.
    """

    def __init__(self, client: BrightDataClient, dataset_id: str,
                 poll_interval: float = 5.0, max_wait: float = 300.0, sleep=time.sleep):
        self.client = client
        self.dataset_id = dataset_id
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self._sleep = sleep

    def fetch_batch(self, references: list[str]) -> list[ProfileRecord]:
        if not references:
            return []

        logger.info("Fetching %d profiles in one batch", len(references))
        response = self.client.request(
            "POST",
            f"{API_BASE}/datasets/v3/scrape",
            params={"dataset_id": self.dataset_id, "format": "json", "include_errors": "true"},
            json=[{"url": ref} for ref in references],
        )

        if response.status_code == 202:
            snapshot_id = self._json(response).get("snapshot_id")
            if not snapshot_id:
                raise ProviderResponseError("brightdata", 202, "no snapshot_id in response")
            rows = self._wait_for_snapshot(snapshot_id)
        else:
            rows = self._rows(response)

        records = []
        for row in rows:
            record = row_to_profile(row)
            if record is None:
                logger.warning("Skipping unusable profile row: %s", str(row)[:120])
                continue
            records.append(record)

        logger.info("Fetched %d/%d profiles", len(records), len(references))
        return records

    def _wait_for_snapshot(self, snapshot_id: str) -> list:
        waited = 0.0
        while waited < self.max_wait:
            progress = self._json(self.client.request("GET", f"{API_BASE}/datasets/v3/progress/{snapshot_id}"))
            status = progress.get("status")
            if status == "ready":
                snapshot = self.client.request(
                    "GET", f"{API_BASE}/datasets/v3/snapshot/{snapshot_id}", params={"format": "json"}
                )
                return self._rows(snapshot)
            if status == "failed":
                raise ProviderResponseError("brightdata", None, f"snapshot {snapshot_id} failed")

            self._sleep(self.poll_interval)
            waited += self.poll_interval

        raise ProviderTimeoutError("brightdata snapshot", self.max_wait)

    @staticmethod
    def _json(response: requests.Response):
        try:
            return response.json()
        except ValueError as e:
            raise ProviderResponseError("brightdata", response.status_code, "response is not JSON") from e

    @classmethod
    def _rows(cls, response: requests.Response) -> list:
        """Rows arrive as a JSON array, a single object, or NDJSON."""
        try:
            data = response.json()
        except ValueError:
            data = []
            for line in response.text.splitlines():
                line = line.strip()
                if line:
                    try:
                        data.append(json.loads(line))
                    except json.JSONDecodeError:
                        logger.warning("Corrupt NDJSON line in profile batch")
        if isinstance(data, dict):
            data = [data]
        return data if isinstance(data, list) else []
