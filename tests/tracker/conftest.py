"""
Pytest fixtures for tracker service tests.
"""

import os

# IMPORTANT: Set environment variables BEFORE any imports from tracker_service
# so TrackerSettings is configured correctly when first loaded.
os.environ["ENVIRONMENT"] = "development"
os.environ["CORS_ORIGINS"] = "*"
os.environ["RATE_LIMIT_REQUESTS"] = "0"

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Point the service at an empty data directory."""
    from tracker_service.config import get_settings

    directory = tmp_path / "data"
    monkeypatch.setenv("DATA_DIR", str(directory))
    get_settings.cache_clear()
    yield directory
    get_settings.cache_clear()


@pytest.fixture
def client(data_dir):
    """FastAPI test client fixture (runs the startup hook)."""
    from tracker_service.app import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sample_record():
    return {
        "location": "Berlin",
        "website": "https://x.com",
        "websiteToJobs": "https://x.com/careers",
        "hasJob": True,
    }


@pytest.fixture
def sample_rows():
    """Three job records, the last one sparsely filled."""
    return [
        {
            "location": "Berlin, Germany",
            "website": "https://example-company.com",
            "websiteToJobs": "https://example-company.com/careers",
            "hasJob": True,
            "name": "Senior Software Engineer",
            "salary": "€70,000 - €90,000",
            "homeOfficeOption": True,
            "period": "Full-time",
            "employmentType": "Permanent",
            "applicationDate": "2025-10-15",
            "comments": "Great company culture, flexible hours",
            "foundOn": "LinkedIn",
            "occupyStart": "2025-12-01",
        },
        {
            "location": "Munich, Germany",
            "website": "https://another-company.com",
            "websiteToJobs": "https://another-company.com/jobs",
            "hasJob": True,
            "name": "Frontend Developer",
            "salary": "€60,000 - €75,000",
            "homeOfficeOption": False,
            "period": "Full-time",
            "employmentType": "Contract",
            "applicationDate": "2025-10-20",
            "comments": "Need to relocate",
            "foundOn": "Indeed",
            "occupyStart": "2026-01-15",
        },
        {
            "location": "Hamburg, Germany",
            "website": "https://tech-startup.io",
            "websiteToJobs": "https://tech-startup.io/careers",
            "hasJob": False,
            "name": None,
            "salary": None,
            "homeOfficeOption": None,
            "period": None,
            "employmentType": None,
            "applicationDate": None,
            "comments": None,
            "foundOn": "Company Website",
        },
    ]
