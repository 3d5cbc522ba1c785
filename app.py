#!/usr/bin/env python3
"""
Profile Scout Web API

Flask app for profile search and asynchronous deep research.
"""

import atexit
import logging
from dataclasses import dataclass
from typing import Optional

from flask import Flask

from config import Settings, configure_logging, load_settings
from providers.brightdata import BrightDataClient, BrightDataFetchProvider, BrightDataSearchProvider
from providers.llm import LLMClient
from providers.parser import LLMQueryParser
from providers.web import WebPageFetcher
from providers.workflow import DeepResearchWorkflow
from repositories import Repository, create_repository
from routes import BLUEPRINTS
from routes.context import EXTENSION_KEY
from routes.errors import register_error_handlers
from services import CacheAsideResolver, InflightRegistry, ResearchStateMachine, SearchService
from workers import ResearchWorkerPool, StaleJobReaper

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a request handler needs, owned by one app."""
    settings: Settings
    repository: Repository
    search: SearchService
    research: ResearchStateMachine
    pool: Optional[ResearchWorkerPool] = None
    reaper: Optional[StaleJobReaper] = None

    def start_workers(self) -> None:
        if self.pool is None:
            self.pool = ResearchWorkerPool(self.research.execute, num_workers=self.settings.research_workers)
        self.research.set_dispatcher(self.pool.submit)
        self.pool.start()
        self.research.requeue_pending()

        if self.settings.research_stale_after_seconds > 0 and self.reaper is None:
            self.reaper = StaleJobReaper(
                self.research,
                stale_after_seconds=self.settings.research_stale_after_seconds,
                interval=self.settings.reaper_interval_seconds,
            )
        if self.reaper is not None:
            self.reaper.start()

    def shutdown(self) -> None:
        if self.reaper is not None:
            self.reaper.stop()
        if self.pool is not None:
            self.pool.stop()
        self.research.set_dispatcher(None)
        self.repository.close()


def build_services(settings: Settings, repository: Optional[Repository] = None) -> Services:
    """Wire the production collaborators from settings."""
    repository = repository or create_repository(settings)

    llm = LLMClient.from_settings(settings)
    brightdata = BrightDataClient.from_settings(settings)
    fetch_provider = BrightDataFetchProvider(brightdata, settings.brightdata_dataset_id)

    inflight = InflightRegistry() if settings.share_inflight_fetches else None
    resolver = CacheAsideResolver(repository.profiles, fetch_provider, inflight=inflight)
    search = SearchService(LLMQueryParser(llm), BrightDataSearchProvider(brightdata), resolver)

    workflow = DeepResearchWorkflow(
        fetch_provider,
        brightdata,
        WebPageFetcher(timeout=settings.http_timeout),
        llm,
        max_web_results=settings.max_web_results,
    )
    research = ResearchStateMachine(repository.jobs, workflow)

    return Services(settings=settings, repository=repository, search=search, research=research)


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None,
               start_workers: bool = True) -> Flask:
    """
    Application factory.

    Tests pass their own services (stub providers, memory store) and
    usually start_workers=False to drive execution by hand.
    """
    if services is None:
        settings = settings or load_settings()
        services = build_services(settings)
    settings = services.settings

    app = Flask(__name__)
    app.json.sort_keys = False
    app.extensions[EXTENSION_KEY] = services

    for bp in BLUEPRINTS:
        app.register_blueprint(bp)
    register_error_handlers(app)

    if start_workers:
        services.start_workers()
        atexit.register(services.shutdown)

    logger.info("Profile Scout ready (store=%s, workers=%s)",
                settings.store_backend, settings.research_workers if start_workers else 0)
    return app


if __name__ == "__main__":
    settings = load_settings()
    configure_logging(settings.log_level)
    app = create_app(settings)
    print(f"Starting server on http://{settings.host}:{settings.port}")
    app.run(host=settings.host, port=settings.port, debug=False, threaded=True)
