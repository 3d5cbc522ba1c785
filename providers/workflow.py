"""
Deep research workflow - the default multi-step enrichment for one person.

Steps, in order:
    1. profile      - full profile record from the fetch provider
    2. web_search   - Google results about the person (profile site excluded)
    3. summarize    - read each page and summarize what it says about them
    4. synthesize   - write the final report from everything gathered

Steps 1-3 are best-effort: failures are recorded in metadata["errors"]
and the run continues. Step 4 must succeed.
"""

import json
import logging
from typing import Optional

from models import ProfileRecord, ResearchSource, canonical_profile_url
from .base import (
    FetchProvider,
    ProviderError,
    ProgressCallback,
    ResearchWorkflow,
    WorkflowError,
    WorkflowOutcome,
)
from .brightdata import BrightDataClient
from .llm import LLMClient
from .web import WebPageFetcher

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM = "You are a research assistant building a briefing about one professional."

SUMMARY_PROMPT = """Summarize what this page says about {name}. Keep facts only, 3-5 sentences.
If the page is not about this person, reply with exactly: IRRELEVANT

Page title: {title}
Page URL: {url}

Content:
{content}
"""

REPORT_SYSTEM = "You write concise, well-sourced professional research reports in Markdown."

REPORT_PROMPT = """Write a research report about {name}.

Sections: Overview, Career, Notable Work, Online Presence, Key Takeaways.
Only use the data below. Cite sources by URL where relevant.

PROFILE DATA:
{profile}

WEB FINDINGS:
{findings}
"""

MAX_PAGE_CHARS = 6000


class DeepResearchWorkflow(ResearchWorkflow):

    def __init__(self, fetch_provider: FetchProvider, search_client: BrightDataClient,
                 page_fetcher: WebPageFetcher, llm: LLMClient, max_web_results: int = 5):
        self.fetch_provider = fetch_provider
        self.search_client = search_client
        self.page_fetcher = page_fetcher
        self.llm = llm
        self.max_web_results = max_web_results

    def run(self, identifier: str, subject_name: str,
            on_progress: Optional[ProgressCallback] = None,
            reference: Optional[str] = None) -> WorkflowOutcome:
        errors: list[str] = []
        steps = 0

        def progress(step: str, **counters):
            nonlocal steps
            steps += 1
            if on_progress:
                on_progress(current_step=step, steps_executed=steps, **counters)

        profile = self._gather_profile(identifier, reference, errors)
        progress("profile", linkedin_data_available=profile is not None)

        results = self._search_web(subject_name, profile, errors)
        progress("web_search", search_results_count=len(results))

        summaries = self._summarize(subject_name, results, errors)
        progress("summarize", web_summaries_count=len(summaries))

        if profile is None and not summaries:
            raise WorkflowError(f"No data could be gathered for {subject_name}: {'; '.join(errors) or 'no results'}")

        report = self._synthesize(subject_name, profile, summaries)
        progress("synthesize")

        return WorkflowOutcome(
            report=report,
            sources=summaries,
            metadata={
                "linkedin_data_available": profile is not None,
                "search_results_count": len(results),
                "web_summaries_count": len(summaries),
                "steps_executed": steps,
                "errors": errors,
            },
        )

    def _gather_profile(self, identifier: str, reference: Optional[str],
                        errors: list) -> Optional[ProfileRecord]:
        try:
            records = self.fetch_provider.fetch_batch([reference or canonical_profile_url(identifier)])
        except ProviderError as e:
            logger.warning("Profile step failed for %s: %s", identifier, e)
            errors.append(f"profile: {e}")
            return None
        return next((r for r in records if r.identifier == identifier), records[0] if records else None)

    def _search_web(self, subject_name: str, profile: Optional[ProfileRecord], errors: list) -> list[dict]:
        query = f'"{subject_name}"'
        if profile and profile.current_company:
            query += f' "{profile.current_company}"'
        query += " -site:linkedin.com"

        try:
            data = self.search_client.search_google(query)
        except ProviderError as e:
            logger.warning("Web search failed for %s: %s", subject_name, e)
            errors.append(f"web_search: {e}")
            return []

        results = []
        for item in data.get("organic") or []:
            link = item.get("link") if isinstance(item, dict) else None
            if link and "linkedin.com" not in link:
                results.append({"url": link, "title": item.get("title", ""), "snippet": item.get("description", "")})
            if len(results) >= self.max_web_results:
                break
        return results

    def _summarize(self, subject_name: str, results: list[dict], errors: list) -> list[ResearchSource]:
        summaries = []
        for result in results:
            page = self.page_fetcher.fetch(result["url"])
            if page.success:
                title, content = page.title or result["title"], page.content[:MAX_PAGE_CHARS]
            elif result.get("snippet"):
                title, content = result["title"], result["snippet"]
            else:
                errors.append(f"fetch {result['url']}: {page.error}")
                continue

            try:
                summary = self.llm.complete(SUMMARY_SYSTEM, SUMMARY_PROMPT.format(
                    name=subject_name, title=title, url=result["url"], content=content,
                )).strip()
            except ProviderError as e:
                errors.append(f"summarize {result['url']}: {e}")
                continue

            if summary and summary.upper() != "IRRELEVANT":
                summaries.append(ResearchSource(url=result["url"], summary=summary))
        return summaries

    def _synthesize(self, subject_name: str, profile: Optional[ProfileRecord],
                    summaries: list[ResearchSource]) -> str:
        profile_text = "Not available"
        if profile:
            profile_text = json.dumps(
                profile.model_dump(mode="json", exclude={"details", "fetched_at"}), indent=2
            )
        findings = "\n\n".join(f"- {s.url}\n  {s.summary}" for s in summaries) or "None"

        try:
            report = self.llm.complete(REPORT_SYSTEM, REPORT_PROMPT.format(
                name=subject_name, profile=profile_text, findings=findings,
            )).strip()
        except ProviderError as e:
            raise WorkflowError(f"Report synthesis failed: {e}") from e

        if not report:
            raise WorkflowError("Workflow completed but no report was generated")
        return report
