"""
Profiles - identifiers and enriched profile records.
"""

from datetime import datetime
from typing import Optional
from urllib.parse import urlsplit, unquote
from pydantic import Field

from .base import BaseEntity, utcnow

PROFILE_HOST = "linkedin.com"
PROFILE_PATH_PREFIX = "in"


def _split(raw: str):
    raw = raw.strip()
    if raw.startswith("/") and not raw.startswith("//"):
        # path only: "/in/alice"
        return urlsplit(raw)
    if "://" not in raw:
        # "linkedin.com/in/alice" or "//host/in/alice"
        raw = "https://" + raw.lstrip("/")
    return urlsplit(raw)


def normalize_identifier(raw) -> Optional[str]:
    """
    Reduce a raw profile reference to its canonical identifier.

    Query strings, fragments, trailing path segments and the host are
    ignored, so "https://uk.linkedin.com/in/Alice/?trk=x" and
    "linkedin.com/in/alice" both give "alice". Returns None for anything
    that doesn't name a profile.
    """
    if not isinstance(raw, str) or not raw.strip():
        return None

    try:
        parts = _split(raw)
    except ValueError:
        return None

    segments = [s for s in parts.path.split("/") if s]
    if len(segments) < 2 or segments[0].lower() != PROFILE_PATH_PREFIX:
        return None

    slug = unquote(segments[1]).strip().lower()
    return slug or None


def is_profile_url(url) -> bool:
    """True for http(s) URLs on the profile host that point at a profile."""
    if not isinstance(url, str):
        return False
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return False

    host = (parts.hostname or "").lower()
    if parts.scheme not in ("http", "https"):
        return False
    if host != PROFILE_HOST and not host.endswith("." + PROFILE_HOST):
        return False
    return parts.path.startswith(f"/{PROFILE_PATH_PREFIX}/")


def clean_profile_url(url: str) -> str:
    """Drop query and fragment, pin the canonical host."""
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return url
    return f"https://www.{PROFILE_HOST}{parts.path}"


def canonical_profile_url(identifier: str) -> str:
    return f"https://www.{PROFILE_HOST}/{PROFILE_PATH_PREFIX}/{identifier}"


class ProfileRecord(BaseEntity):
    """Enriched data for one profile. Re-fetching overwrites, never merges."""
    identifier: str
    url: str
    name: Optional[str] = None
    headline: Optional[str] = None
    location: Optional[str] = None
    country_code: Optional[str] = None
    about: Optional[str] = None
    current_company: Optional[str] = None
    avatar: Optional[str] = None
    followers: Optional[int] = None
    connections: Optional[int] = None
    experience: list[dict] = Field(default_factory=list)
    education: list[dict] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=utcnow)

    # Provider fields we don't model explicitly
    details: dict = Field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.name or self.identifier
