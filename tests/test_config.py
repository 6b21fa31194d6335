from pagewright.config import RuntimeConfig, load_config


def test_defaults_without_environment():
    assert load_config({}) == RuntimeConfig()


def test_values_are_read_from_environment():
    config = load_config(
        {
            "PAGEWRIGHT_QUERY_ENDPOINT": " https://api.example/rql ",
            "PAGEWRIGHT_SITE_ORIGIN": "https://shop.example",
            "PAGEWRIGHT_HTTP_TIMEOUT_SECONDS": "2.5",
            "PAGEWRIGHT_HTTP_MAX_RETRIES": "3",
            "PAGEWRIGHT_MAX_RENDER_PASSES": "4",
            "PAGEWRIGHT_DEFAULT_LOCALE": "fr-FR",
            "PAGEWRIGHT_EMBEDDED_PREVIEW": "yes",
        }
    )
    assert config.query_endpoint == "https://api.example/rql"
    assert config.site_origin == "https://shop.example"
    assert config.http_timeout_seconds == 2.5
    assert config.http_max_retries == 3
    assert config.max_render_passes == 4
    assert config.default_locale == "fr-FR"
    assert config.embedded_preview is True


def test_bad_values_fall_back_and_are_clamped():
    config = load_config(
        {
            "PAGEWRIGHT_HTTP_TIMEOUT_SECONDS": "soon",
            "PAGEWRIGHT_HTTP_MAX_RETRIES": "-2",
            "PAGEWRIGHT_MAX_RENDER_PASSES": "0",
            "PAGEWRIGHT_MOCK_DELAY_SECONDS": "-1",
            "PAGEWRIGHT_QUERY_ENDPOINT": "   ",
        }
    )
    assert config.http_timeout_seconds == 15.0
    assert config.http_max_retries == 0
    assert config.max_render_passes == 1
    assert config.mock_delay_seconds == 0.0
    assert config.query_endpoint is None


def test_process_environment_is_used_by_default(monkeypatch):
    monkeypatch.setenv("PAGEWRIGHT_PLACEHOLDER_MAX_DEPTH", "3")
    assert load_config().placeholder_max_depth == 3


def test_circuit_settings_are_read_and_clamped():
    config = load_config({"PAGEWRIGHT_CIRCUIT_FAILURE_THRESHOLD": "3", "PAGEWRIGHT_CIRCUIT_RESET_SECONDS": "7.5"})
    assert (config.circuit_failure_threshold, config.circuit_reset_seconds) == (3, 7.5)
    clamped = load_config({"PAGEWRIGHT_CIRCUIT_FAILURE_THRESHOLD": "0", "PAGEWRIGHT_CIRCUIT_RESET_SECONDS": "-4"})
    assert (clamped.circuit_failure_threshold, clamped.circuit_reset_seconds) == (1, 0.0)
