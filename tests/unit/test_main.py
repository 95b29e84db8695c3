# tests/unit/test_main.py — v2
"""Tests for main.py — CLI entry point."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from sportsync.main import _build_parser, _load_events, main


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch) -> Path:
    """Run the CLI from an empty project dir with no LLM configured."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LLM_PROVIDER", "none")
    monkeypatch.setenv("PROJECT_ROOT", str(tmp_path))
    monkeypatch.delenv("LOG_FILE", raising=False)
    return tmp_path


# ---------------------------------------------------------------------------
# Parser tests
# ---------------------------------------------------------------------------

class TestBuildParser:
    def test_version_flag(self):
        with pytest.raises(SystemExit) as exc_info:
            _build_parser().parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_run_subcommand(self):
        args = _build_parser().parse_args(["run", "--manifest", "m.json", "--result", "r.json"])
        assert args.command == "run"
        assert args.manifest == Path("m.json")
        assert args.result == Path("r.json")

    def test_featured_requires_events(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["featured", "--output", "f.json"])

    def test_no_command(self, cli_env):
        assert main([]) == 1


class TestLoadEvents:
    def test_array(self, tmp_path: Path):
        path = tmp_path / "events.json"
        path.write_text('[{"title": "a"}, 3]')
        assert _load_events(path) == [{"title": "a"}]

    def test_wrapped(self, tmp_path: Path):
        path = tmp_path / "events.json"
        path.write_text('{"events": [{"title": "a"}]}')
        assert _load_events(path) == [{"title": "a"}]

    def test_invalid(self, tmp_path: Path):
        path = tmp_path / "events.json"
        path.write_text('{"other": 1}')
        with pytest.raises(ValueError):
            _load_events(path)


# ---------------------------------------------------------------------------
# Command tests
# ---------------------------------------------------------------------------

def _manifest(tmp_path: Path, gate_code: int) -> Path:
    py = f'"{sys.executable}" -c'
    doc = {"phases": [
        {"name": "build", "steps": [
            {"name": "build-events", "command": f'{py} "pass"', "errorPolicy": "required"},
        ]},
        {"name": "finalize", "steps": [
            {"name": "pre-commit-gate", "command": f'{py} "import sys; sys.exit({gate_code})"',
             "errorPolicy": "continue"},
        ]},
    ]}
    path = tmp_path / "manifest.json"
    path.write_text(json.dumps(doc))
    return path


class TestCmdRun:
    def test_pass(self, cli_env: Path):
        result = cli_env / "result.json"
        code = main(["run", "--manifest", str(_manifest(cli_env, 0)), "--result", str(result)])
        assert code == 0
        assert json.loads(result.read_text())["gate"] == "pass"

    def test_gate_fail(self, cli_env: Path):
        result = cli_env / "result.json"
        code = main(["run", "--manifest", str(_manifest(cli_env, 1)), "--result", str(result)])
        assert code == 1
        assert json.loads(result.read_text())["gate"] == "fail"

    def test_bad_manifest_writes_partial_result(self, cli_env: Path):
        manifest = cli_env / "bad.json"
        manifest.write_text('{"phases": 1}')
        result = cli_env / "result.json"
        assert main(["run", "--manifest", str(manifest), "--result", str(result)]) == 1
        doc = json.loads(result.read_text())
        assert doc["gate"] == "fail"
        assert "error" in doc


class TestCmdValidate:
    def test_valid(self, cli_env: Path, valid_featured, capsys):
        path = cli_env / "featured.json"
        path.write_text(json.dumps(valid_featured))
        assert main(["validate", str(path)]) == 0
        assert "valid (score 100)" in capsys.readouterr().out

    def test_invalid(self, cli_env: Path, capsys):
        path = cli_env / "featured.json"
        path.write_text('{"blocks": []}')
        assert main(["validate", str(path)]) == 1
        assert "blocks_empty" in capsys.readouterr().out


class TestCmdHints:
    def test_no_history(self, cli_env: Path, capsys):
        assert main(["hints", "--history", str(cli_env / "h.json")]) == 0
        assert "No adaptive corrections active." in capsys.readouterr().out

    def test_active_hints(self, cli_env: Path, capsys):
        history = cli_env / "h.json"
        history.write_text(json.dumps([{"editorial": {"mustWatchCoverage": 0.1}}] * 3))
        assert main(["hints", "--history", str(history)]) == 0
        assert "must-watch" in capsys.readouterr().out

    def test_malformed_editorial_entries(self, cli_env: Path, capsys):
        history = cli_env / "h.json"
        history.write_text(json.dumps([{"editorial": "n/a"}] * 3))
        assert main(["hints", "--history", str(history)]) == 0
        assert "No adaptive corrections active." in capsys.readouterr().out


class TestCmdFeatured:
    def test_fallback_without_llm(self, cli_env: Path, capsys):
        events = cli_env / "events.json"
        events.write_text("[]")
        output = cli_env / "featured.json"
        history = cli_env / "h.json"

        code = main(["featured", "--events", str(events), "--output", str(output),
                     "--history", str(history)])

        featured = json.loads(output.read_text())
        assert featured["blocks"][0]["text"] == "No events scheduled today."
        assert len(featured["blocks"]) == 3
        assert code == 0
        entries = json.loads(history.read_text())
        assert len(entries) == 1
        assert entries[0]["featured"]["provider"] == "fallback"
        assert entries[0]["tokenUsage"] is None
        assert "Provider:   fallback" in capsys.readouterr().out
