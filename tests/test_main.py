"""Tests for the command-line entry point."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

import pytest
import structlog

from gamereqs import main as cli
from gamereqs.models import CacheEntry, GameRequirements, RequirementRecord, RequirementSource


CATALOG = {
    "readyToPlay": [
        {
            "id": "1",
            "name": "The Witcher 3",
            "systemRequirements": {
                "minimum": {
                    "cpu": "Intel Core i5-2500K",
                    "gpu": "NVIDIA GTX 660",
                    "ram": "8 GB",
                    "storage": "50 GB",
                    "os": "Windows 10",
                },
            },
        },
    ],
    "repack": [{"id": "2", "name": "Hades"}],
}


@pytest.fixture(autouse=True)
def isolated_cli(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.delenv("GAMEREQS_CACHE_DIR", raising=False)
    monkeypatch.delenv("RAWG_API_KEY", raising=False)
    monkeypatch.setattr(cli, "setup_signal_handlers", lambda context: None)
    yield
    structlog.reset_defaults()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    config = {
        "cache_dir": str(tmp_path / "cache"),
        "fallback_path": str(tmp_path / "fallback.json"),
        "item_delay": 0,
        "batch_delay": 0,
        "enable_third_party": False,
    }
    (tmp_path / "config.json").write_text(json.dumps(config), encoding="utf-8")
    (tmp_path / "games.json").write_text(json.dumps(CATALOG), encoding="utf-8")
    (tmp_path / "fallback.json").write_text(
        json.dumps({"Hades": {"cpu": "Dual Core 2.4 GHz", "ram": "4 GB", "os": "Windows 7"}}),
        encoding="utf-8",
    )
    return tmp_path


def run(workspace: Path, capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, object]:
    exit_code = cli.main(["--config", str(workspace / "config.json"), *argv])
    out = capsys.readouterr().out
    return exit_code, json.loads(out) if out.strip() else None


class TestCommands:
    def test_parse(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        exit_code, output = run(workspace, capsys, "parse", "Processor: Intel Core i5-4460<br>Memory: 8192 MB")

        assert exit_code == 0
        assert output["cpu"] == "Intel Core i5-4460"
        assert output["ram"] == "8 GB"
        assert output["ramGB"] == 8

    def test_resolve_served_from_cache(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        entry = CacheEntry(
            RequirementSource.STEAM,
            GameRequirements.build(RequirementRecord(cpu="Intel Core i5-4460")),
            datetime.now(timezone.utc),
        )
        (workspace / "cache").mkdir()
        (workspace / "cache" / "42.json").write_text(json.dumps(entry.to_dict()), encoding="utf-8")

        exit_code, output = run(workspace, capsys, "resolve", "--id", "42", "--name", "Hades")

        assert exit_code == 0
        assert output["source"] == "cache"
        assert output["gameId"] == "42"
        assert output["requirements"]["minimum"]["cpu"] == "Intel Core i5-4460"

    def test_check_uses_catalog_requirements(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        exit_code, output = run(
            workspace, capsys,
            "check", str(workspace / "games.json"),
            "--cpu", "Intel Core i5-8400", "--gpu", "NVIDIA GTX 1060",
            "--ram", "16", "--storage", "500", "--os", "Windows 10",
            "--game-id", "1",
        )

        assert exit_code == 0
        [report] = output
        assert report["gameId"] == "1"
        assert report["source"] == "cache"
        assert report["score"] == 1.0
        assert report["tier"] == "Strong"

    def test_merge_fallback(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        exit_code, output = run(workspace, capsys, "merge-fallback", str(workspace / "games.json"))

        assert exit_code == 0
        assert [item["id"] for item in output] == ["2"]
        assert output[0]["requirements"]["minimum"]["ramGB"] == 4

    def test_backfill_with_nothing_pending(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        exit_code, output = run(
            workspace, capsys, "backfill", str(workspace / "games.json"), "--category", "readyToPlay",
            "--results", str(workspace / "results.json"),
        )

        assert exit_code == 0
        assert output["processed"] == 0
        assert output["cancelled"] is False
        assert output["results"] == str(workspace / "results.json")


class TestFailures:
    def test_unknown_catalog_id(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        exit_code = cli.main([
            "--config", str(workspace / "config.json"),
            "resolve", "--id", "99", "--catalog", str(workspace / "games.json"),
        ])

        captured = capsys.readouterr()
        assert exit_code == 1
        assert captured.out == ""
        assert "Game 99 is not in the catalog" in captured.err

    def test_missing_catalog_file(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        exit_code = cli.main(["--config", str(workspace / "config.json"), "check", str(workspace / "nope.json")])

        assert exit_code == 1
        assert "file system error" in capsys.readouterr().err

    def test_invalid_weights(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        exit_code = cli.main([
            "--config", str(workspace / "config.json"),
            "check", str(workspace / "games.json"), "--weights", "[1, 2]",
        ])

        assert exit_code == 1
        assert "Weights must be a JSON object" in capsys.readouterr().err

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--version"])

        assert exc_info.value.code == 0
        assert cli.VERSION in capsys.readouterr().out
