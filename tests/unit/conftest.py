"""
Unit test fixtures.

All unit tests should be:
- Fast (< 100ms)
- Isolated (no external dependencies)
- Deterministic (same result every time)
"""

import pytest
from datetime import datetime, timezone


@pytest.fixture
def fixed_time():
    """Fixed datetime for deterministic tests."""
    return datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def brightdata_row():
    """Raw people-profile dataset row."""
    return {
        "url": "https://www.linkedin.com/in/alice-smith?trk=search",
        "input_url": "https://linkedin.com/in/alice-smith",
        "linkedin_id": "alice-smith",
        "name": "Alice Smith",
        "position": "Staff Engineer at Acme",
        "city": "Berlin, Germany",
        "country_code": "DE",
        "about": "Builds distributed systems.",
        "current_company": {"name": "Acme"},
        "avatar": "https://media.example.com/alice.jpg",
        "followers": 1200,
        "connections": 500,
        "experience": [{"title": "Staff Engineer", "company": "Acme"}],
        "education": [{"title": "TU Berlin"}],
        "recommendations_count": 3,
    }
