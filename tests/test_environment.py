import pytest

from pagewright.resolution.environment import Environment, detect_breakpoint, is_rtl, negotiate_locale


@pytest.mark.parametrize(
    "width,expected",
    [(320, "mobile"), (767, "mobile"), (768, "tablet"), (1023, "tablet"), (1024, "desktop"), (2560, "desktop")],
)
def test_default_breakpoints(width, expected):
    assert detect_breakpoint(width) == expected


def test_no_width_means_no_breakpoint():
    assert detect_breakpoint(None) is None


def test_custom_breakpoint_table():
    table = {"compact": "(max-width: 599px)", "wide": "(min-width: 600px)"}
    assert detect_breakpoint(599, table) == "compact"
    assert detect_breakpoint(600, table) == "wide"


def test_negotiate_locale():
    supported = ["en-US", "fr-FR", "de"]
    assert negotiate_locale("fr-FR", supported) == "fr-FR"
    assert negotiate_locale("fr-ca", supported) == "fr-FR"
    assert negotiate_locale("DE", supported) == "de"
    assert negotiate_locale("ja-JP", supported) == "en-US"
    assert negotiate_locale(None, supported, default="de") == "de"
    assert negotiate_locale("pt-BR") == "pt-BR"


def test_environment_viewport_scope():
    env = Environment.for_viewport(400, locale="ar-EG")
    assert env.breakpoint == "mobile"
    assert env.viewport() == {"width": 400, "breakpoint": "mobile", "locale": "ar-EG", "isRtl": True}
    assert is_rtl("en-US") is False


def test_explicit_breakpoint_wins_over_width():
    assert Environment.for_viewport(400, breakpoint="desktop").breakpoint == "desktop"
