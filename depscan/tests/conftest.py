"""
Shared pytest fixtures for depscan tests.
"""

import sys
import os
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

# Set minimal environment variables for testing
os.environ.setdefault('GITHUB_CLIENT_ID', 'test_client_id')
os.environ.setdefault('GITHUB_CLIENT_SECRET', 'test_client_secret')
os.environ.setdefault('SESSION_SECRET', 'test_session_secret_for_testing_only')

import pytest
from fastapi.testclient import TestClient

from depscan.main import app
from depscan.domain.repository_models import Session
from depscan.services.repository_fetcher import FetchOutcome
from depscan.tests.factories import NOW, make_repository


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def now():
    """Fixed reference time for age calculations."""
    return NOW


@pytest.fixture
def session():
    """Authenticated session carrying a delegated token."""
    return Session(subject_id='583231', access_token='gho_test_token', session_id='view-1')


@pytest.fixture
def five_repositories():
    """Five repositories, most recently updated first."""
    return tuple(
        make_repository(i, f'repo-{i}', language='Python', days_old=i)
        for i in range(1, 6)
    )


@pytest.fixture
def success_outcome(five_repositories):
    """Successful fetch of five repositories."""
    return FetchOutcome(ok=True, repositories=five_repositories)


@pytest.fixture
def failure_outcome():
    """Fetch rejected by GitHub with a 502."""
    return FetchOutcome(error='GitHub API error (502)', status_code=502)
