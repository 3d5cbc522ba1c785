"""
Integration test: App startup.

Verifies the app factory wires real collaborators from settings
without touching the network (SDK and HTTP clients are created lazily).
"""

from app import Services, build_services, create_app
from config import Settings
from repositories import JsonRepository, MemoryRepository


class TestAppStartup:

    def test_build_services_from_settings(self):
        services = build_services(Settings(store_backend="memory"))

        assert isinstance(services.repository, MemoryRepository)
        assert services.pool is None
        assert services.research.workflow is not None
        assert services.search.resolver.inflight is None

    def test_inflight_sharing_opt_in(self):
        services = build_services(Settings(store_backend="memory", share_inflight_fetches=True))
        assert services.search.resolver.inflight is not None

    def test_json_backend(self, data_dir):
        services = build_services(Settings(store_backend="json", data_dir=str(data_dir)))
        assert isinstance(services.repository, JsonRepository)
        assert services.repository.ping()

    def test_blueprints_registered(self):
        app = create_app(services=build_services(Settings(store_backend="memory")), start_workers=False)

        assert {"search", "research", "health"} <= set(app.blueprints)

    def test_routes_exist(self):
        app = create_app(services=build_services(Settings(store_backend="memory")), start_workers=False)

        rules = {rule.rule for rule in app.url_map.iter_rules()}

        assert "/api/search" in rules
        assert "/api/research" in rules
        assert "/api/research/<job_id>" in rules
        assert "/api/profiles/<path:reference>" in rules
        assert "/api/health" in rules

    def test_health_endpoint(self):
        app = create_app(services=build_services(Settings(store_backend="memory")), start_workers=False)

        response = app.test_client().get("/api/health")

        assert response.status_code == 200
        assert response.get_json()["status"] == "ok"

    def test_workers_start_and_stop(self):
        services = build_services(Settings(store_backend="memory", research_workers=2,
                                           research_stale_after_seconds=600))
        create_app(services=services)
        try:
            assert services.pool.running
            assert services.reaper is not None and services.reaper.is_running()
        finally:
            services.shutdown()

        assert not services.pool.running
        assert not services.reaper.is_running()

    def test_services_dataclass(self):
        repo = MemoryRepository()
        services = build_services(Settings(store_backend="memory"), repository=repo)
        assert isinstance(services, Services)
        assert services.repository is repo
