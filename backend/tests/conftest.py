"""
conftest.py — Shared pytest fixtures for the HR operations backend test suite.

Core tests (intervals, aggregates, stop-clock, KPI engine) are pure unit tests
against a fixed ``NOW`` so every duration is exact. API tests build a fresh
app per test with DATA_DIR pointed at ``tmp_path``.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``app.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
from datetime import datetime, timedelta, timezone

import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any app imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


NOW = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)


def hours_ago(h: float) -> datetime:
    return NOW - timedelta(hours=h)


@pytest.fixture
def now():
    return NOW


# ---------------------------------------------------------------------------
# KPIEngine fixture
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def kpi_engine():
    """KPIEngine with defaults: 72h fairness SLA, pool multiple stub of 3."""
    from app.services.kpi_engine import KPIEngine
    return KPIEngine()


# ---------------------------------------------------------------------------
# Demo data set (same shape as the first-run seed)
# ---------------------------------------------------------------------------

@pytest.fixture
def demo_tickets():
    """
    F1: fairness, created 60h ago, closed 12h ago  -> 48h, within 72h
    F2: fairness, created 120h ago, closed 20h ago -> 100h, outside 72h
    R1/R2: hiring tickets, OPEN and IN_PROGRESS
    """
    from app.db.seed import demo_tickets as build
    return build(NOW)


@pytest.fixture
def demo_requisitions():
    """
    RQ1 key role: interview 300h ago, offer 276h ago (24h); approved 400h, onboarded 200h (200h)
    RQ2 key role: interview 250h ago, offer 202h ago (48h); approved 500h, onboarded 140h (360h)
    RQ3: approved 400h, onboarded 160h (240h)
    RQ4: approved 200h, onboarded 80h (120h)
    """
    from app.db.seed import demo_requisitions as build
    return build(NOW)


@pytest.fixture
def demo_survey():
    """Scores 10,9,9,8,7,6,0: 3 promoters, 2 detractors, 7 responses."""
    from app.models.hr_models import SurveyResponse
    return [SurveyResponse(score=s) for s in [10, 9, 9, 8, 7, 6, 0]]


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def api_settings(tmp_path):
    from app.config import Settings
    return Settings(
        data_dir=str(tmp_path / "data"),
        base_url="http://testserver",
        wecom_corp_id="corp-test",
        wecom_corp_secret="secret-test",
        wecom_dev_allow_fallback=True,
        session_secret_key="test-secret",
        seed_demo_data=True,
        json_logs=False,
    )


@pytest.fixture
def client(api_settings):
    """TestClient over a fresh app; the lifespan loads (and seeds) the store."""
    from fastapi.testclient import TestClient
    from app.main import create_app

    app = create_app(api_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def dev_client(client):
    """``client`` already signed in through the developer fallback login."""
    r = client.get("/auth/dev", follow_redirects=False)
    assert r.status_code == 302
    return client
