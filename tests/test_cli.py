import json
from pathlib import Path

import pytest

from pagewright.cli import main


PAGE = {
    "id": "home",
    "name": "Home",
    "route": "/",
    "nodes": [
        {
            "id": "hello",
            "type": "atom",
            "atomType": "Text",
            "params": {"content": "Hi {{ data.name || 'there' }}"},
            "responsiveOverrides": {"mobile": {"params": {"content": "Yo {{ data.name }}"}}},
        }
    ],
}


def write_json(tmp_path: Path, name: str, payload) -> Path:
    path = tmp_path / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_cli_resolve_prints_tree(tmp_path, capsys):
    page_file = write_json(tmp_path, "page.json", PAGE)
    main(["resolve", str(page_file)])
    payload = json.loads(capsys.readouterr().out)
    assert payload["nodes"][0]["params"]["content"] == "Hi there"


def test_cli_resolve_with_data_and_width(tmp_path, capsys):
    page_file = write_json(tmp_path, "page.json", PAGE)
    data_file = write_json(tmp_path, "data.json", {"name": "Ada"})
    main(["resolve", str(page_file), "--data", str(data_file), "--width", "320"])
    payload = json.loads(capsys.readouterr().out)
    assert payload["breakpoint"] == "mobile"
    assert payload["nodes"][0]["params"]["content"] == "Yo Ada"


def test_cli_resolve_writes_output_file(tmp_path, capsys):
    page_file = write_json(tmp_path, "page.json", PAGE)
    out = tmp_path / "out.json"
    main(["resolve", str(page_file), "--breakpoint", "desktop", "--out", str(out)])
    assert "Wrote" in capsys.readouterr().out
    assert json.loads(out.read_text(encoding="utf-8"))["breakpoint"] == "desktop"


def test_cli_check_reports_invalid_document(tmp_path, capsys):
    page_file = write_json(tmp_path, "page.json", {"nodes": [{"id": "x"}]})
    with pytest.raises(SystemExit) as excinfo:
        main(["check", str(page_file)])
    assert excinfo.value.code == 1
    assert "PW-1101" in capsys.readouterr().err


def test_cli_check_ok(tmp_path, capsys):
    page_file = write_json(tmp_path, "page.json", PAGE)
    main(["check", str(page_file)])
    payload = json.loads(capsys.readouterr().out)
    assert payload == {"status": "ok", "page": {"id": "home", "name": "Home", "route": "/"}, "nodes": 1}


def test_cli_serve_dry_run(capsys):
    main(["serve", "--dry-run", "--port", "9001"])
    payload = json.loads(capsys.readouterr().out)
    assert payload == {"status": "ready", "host": "127.0.0.1", "port": 9001}


def test_cli_version(capsys):
    with pytest.raises(SystemExit):
        main(["--version"])
    assert "pagewright" in capsys.readouterr().out
