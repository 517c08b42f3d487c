from __future__ import annotations

import importlib
import json
import logging

from adapters.sqlite_history import SQLiteBuildHistory


def _load_app(tmp_path, monkeypatch, db_path: str):
    config = {
        "slack": {"team_domain": "acme", "room": "#ci", "build_server_url": "http://host"},
        "jobs": {},
        "history": {"db_path": db_path},
        "logging": {"enabled": False},
    }
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps(config), encoding="utf-8")
    monkeypatch.setenv("HERALD_CONFIG", str(config_path))

    import settings

    importlib.reload(settings)
    import app

    return app


def _write_payload(tmp_path, payload: dict) -> str:
    path = tmp_path / "event.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_completed_survives_unusable_history(tmp_path, monkeypatch, caplog) -> None:
    app = _load_app(tmp_path, monkeypatch, "/nonexistent/dir/h.db")
    payload_path = _write_payload(tmp_path, {"project": "nojob", "number": 1, "result": "FAILURE"})

    with caplog.at_level(logging.ERROR, logger="app"):
        assert app.main(["completed", payload_path]) == 0
    assert "unavailable" in caplog.text


def test_completed_records_build_in_history(tmp_path, monkeypatch) -> None:
    db_path = str(tmp_path / "history.db")
    app = _load_app(tmp_path, monkeypatch, db_path)
    payload_path = _write_payload(tmp_path, {"project": "nojob", "number": 3, "result": "SUCCESS"})

    assert app.main(["completed", payload_path]) == 0
    stored = SQLiteBuildHistory(db_path).get_build("nojob", 3)
    assert stored is not None
    assert stored.current_result.value == "SUCCESS"


def test_non_mapping_cause_exits_with_2(tmp_path, monkeypatch) -> None:
    app = _load_app(tmp_path, monkeypatch, str(tmp_path / "history.db"))
    payload_path = _write_payload(tmp_path, {"project": "nojob", "number": 1, "cause": "user"})
    assert app.main(["completed", payload_path]) == 2


def test_upstream_without_build_exits_with_2(tmp_path, monkeypatch) -> None:
    app = _load_app(tmp_path, monkeypatch, str(tmp_path / "history.db"))
    payload = {"project": "nojob", "number": 1, "cause": {"upstream": {"project": "P"}}}
    assert app.main(["completed", _write_payload(tmp_path, payload)]) == 2
