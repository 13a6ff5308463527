# sitewriter/conftest.py
import os

# Settings are read once at import time, so the test environment goes first
os.environ.setdefault("SKIP_ENV_VALIDATION", "1")
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("GITHUB_OWNER", "owner")
os.environ.setdefault("GITHUB_REPO", "site")
os.environ.setdefault("GITHUB_RESOURCES_REPO", "resources")
os.environ.setdefault("GITHUB_TOKEN", "gh-test-token")
os.environ.setdefault("CLOUDFLARE_ACCOUNT_ID", "acct")
os.environ.setdefault("CLOUDFLARE_API_TOKEN", "cf-token")
os.environ.setdefault("CLOUDFLARE_DELIVERY_HASH", "hash123")
os.environ.pop("SESSION_SECRET", None)
os.environ.pop("TEST_DATABASE_URL", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from sitewriter.tests.mocks import FakeCloudflare, FakeGitHub  # noqa: E402

AUTH_HEADERS = {"X-User-Id": "user-1"}


@pytest.fixture(scope="function", autouse=True)
def fresh_db():
    """
    Fresh in-memory database for every test.

    Drafts and settings are the only local state; everything published lives
    in the fake remote.
    """
    from sitewriter.core import database

    database.init_engine("sqlite:///:memory:")
    database.create_all_tables()
    yield
    database.drop_all_tables()


@pytest.fixture(scope="function", autouse=True)
def reset_metrics():
    from sitewriter.core.metrics import METRICS

    METRICS.reset()
    yield


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
def fake_cloudflare():
    return FakeCloudflare()


@pytest.fixture
def gateway(fake_github):
    from sitewriter.services.github_gateway import RemoteDocumentGateway

    return RemoteDocumentGateway("gh-test-token", "owner", "site", transport=fake_github.transport)


@pytest.fixture
def media_client(fake_cloudflare):
    from sitewriter.services.media_client import MediaUploadClient

    return MediaUploadClient("acct", "cf-token", "hash123", transport=fake_cloudflare.transport)


@pytest.fixture
def app(fake_github, fake_cloudflare):
    from sitewriter.api.deps import get_github_transport, get_media_transport
    from sitewriter.main import app as application

    application.dependency_overrides[get_github_transport] = lambda: fake_github.transport
    application.dependency_overrides[get_media_transport] = lambda: fake_cloudflare.transport
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app, headers=AUTH_HEADERS)


@pytest.fixture
def anon_client(app):
    return TestClient(app, raise_server_exceptions=False)
