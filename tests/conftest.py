import httpx
import pytest
from httpx import ASGITransport

SERVERLESS_VARS = ("AWS_LAMBDA_FUNCTION_NAME", "APPWRITE_FUNCTION_ID", "VERCEL", "NETLIFY")


@pytest.fixture
def mock_env(monkeypatch):
    monkeypatch.setenv("ZYTE_API_KEY", "test-zyte-key")
    monkeypatch.setenv("USE_ZYTE", "true")
    monkeypatch.setenv("BROWSERLESS_TOKEN", "")
    monkeypatch.setenv("LOCAL_BROWSER_ENABLED", "false")
    monkeypatch.setenv("MIN_CONTENT_LENGTH", "200")
    for name in SERVERLESS_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
async def client(mock_env):
    from booking_scraper.main import app, lifespan

    async with lifespan(app):
        async with httpx.AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as c:
            yield c
