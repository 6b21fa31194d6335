import pytest

from pagewright.runtime.deprecation import reset_deprecation_warnings


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    """Keep tests independent of the developer's PAGEWRIGHT_* settings."""
    for name in (
        "PAGEWRIGHT_QUERY_ENDPOINT",
        "PAGEWRIGHT_SITE_ORIGIN",
        "PAGEWRIGHT_DEPRECATION_STRICT",
        "PAGEWRIGHT_LOG_REDACT",
        "PAGEWRIGHT_EMBEDDED_PREVIEW",
        "PAGEWRIGHT_MOCK_DELAY_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_deprecation_warnings()
    yield
