"""
Web page fetcher - plain HTTP + BeautifulSoup text extraction.

Used by the research workflow to read the pages a web search turned up.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
MAX_CONTENT_SIZE = 50000
JUNK_TAGS = ("script", "style", "nav", "header", "footer", "aside", "noscript", "iframe")

BLOCK_INDICATORS = (
    "access denied",
    "captcha",
    "are you a robot",
    "unusual traffic",
    "too many requests",
    "403 forbidden",
    "sign in to continue",
    "enable javascript",
    "subscription required",
)


@dataclass
class FetchResult:
    url: str
    title: str
    content: str
    success: bool
    error: Optional[str] = None


def is_garbage_content(content: str) -> tuple[bool, str]:
    """
    Detect error, block and captcha pages.
    Returns (is_garbage, reason).
    """
    if not content or len(content.strip()) < 100:
        return True, "too short"

    content_lower = content.lower()
    for indicator in BLOCK_INDICATORS:
        # Real articles can mention these words; only short pages are suspect
        if indicator in content_lower and len(content) < 1000:
            return True, f"blocked: {indicator}"

    if len(content.split()) < 20:
        return True, "insufficient content"

    return False, ""


def extract_text(html: str) -> tuple[str, str]:
    """Return (title, main text) from an HTML document."""
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else ""

    for tag in soup(JUNK_TAGS):
        tag.decompose()

    main = soup.find("article") or soup.find("main") or soup.body or soup
    lines = [line.strip() for line in main.get_text("\n").splitlines() if line.strip()]
    content = "\n".join(lines)
    if len(content) > MAX_CONTENT_SIZE:
        content = content[:MAX_CONTENT_SIZE] + "\n\n[TRUNCATED]"
    return title, content


class WebPageFetcher:
    """Fetches a page and returns its readable text."""

    def __init__(self, timeout: int = 15, session: requests.Session = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, url: str) -> FetchResult:
        try:
            r = self.session.get(
                url,
                headers={"User-Agent": USER_AGENT, "Accept-Language": "en-US,en;q=0.9"},
                timeout=self.timeout,
            )
            r.raise_for_status()
        except requests.RequestException as e:
            return FetchResult(url, "", "", False, str(e))

        content_type = r.headers.get("Content-Type", "")
        if "html" not in content_type.lower() and "text" not in content_type.lower():
            return FetchResult(url, "", "", False, f"unsupported content type: {content_type}")

        title, content = extract_text(r.text)
        is_garbage, reason = is_garbage_content(content)
        if is_garbage:
            logger.info("Rejected garbage content from %s: %s", url[:60], reason)
            return FetchResult(url, title, "", False, f"garbage: {reason}")

        return FetchResult(url, title, content, True)
