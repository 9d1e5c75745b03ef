"""Tests for CLI commands."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image
from typer.testing import CliRunner

from photofeed.cli import _setup_logging, app
from photofeed.config import PropertyStore
from photofeed.errors import LockUnavailableError
from photofeed.index.lock import lock_path_for

runner = CliRunner()


@pytest.fixture
def paths(tmp_path: Path) -> dict[str, Path]:
    uploads = tmp_path / "storage" / "uploads"
    uploads.mkdir(parents=True)
    Image.new("RGB", (4, 4)).save(uploads / "one.png")
    Image.new("RGB", (4, 4)).save(uploads / "two.jpg")
    return {
        "index": tmp_path / "index.json",
        "storage": tmp_path / "storage",
        "settings": tmp_path / "settings.json",
    }


def _args(paths: dict[str, Path], *names: str) -> list[str]:
    args: list[str] = []
    for name in names:
        args += [f"--{name}", str(paths[name])]
    return args


class TestSetupLogging:
    """Tests for _setup_logging helper."""

    def test_setup_logging_verbose(self) -> None:
        with patch("photofeed.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=True)
            assert mock_config.call_args[1]["level"] == logging.DEBUG

    def test_setup_logging_normal(self) -> None:
        with patch("photofeed.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=False)
            assert mock_config.call_args[1]["level"] == logging.INFO


class TestSetFolderCommand:
    def test_sets_folder(self, paths) -> None:
        result = runner.invoke(app, ["set-folder", "uploads", *_args(paths, "settings")])

        assert result.exit_code == 0
        assert PropertyStore(paths["settings"]).get_folder() == "uploads"

    def test_rejects_placeholder(self, paths) -> None:
        result = runner.invoke(app, ["set-folder", "YOUR_FOLDER_ID", *_args(paths, "settings")])
        assert result.exit_code != 0


class TestReconcileCommand:
    """Tests for the reconcile command."""

    def test_indexes_images(self, paths) -> None:
        PropertyStore(paths["settings"]).set_folder("uploads")

        result = runner.invoke(app, ["reconcile", *_args(paths, "index", "storage", "settings")])

        assert result.exit_code == 0
        assert "new: 2" in result.stdout
        assert len(json.loads(paths["index"].read_text(encoding="utf-8"))) == 2

    def test_second_run_reports_unchanged(self, paths) -> None:
        PropertyStore(paths["settings"]).set_folder("uploads")
        args = ["reconcile", *_args(paths, "index", "storage", "settings")]
        runner.invoke(app, args)

        result = runner.invoke(app, args)

        assert result.exit_code == 0
        assert "Index unchanged" in result.stdout

    def test_max_items(self, paths) -> None:
        PropertyStore(paths["settings"]).set_folder("uploads")

        result = runner.invoke(
            app, ["reconcile", *_args(paths, "index", "storage", "settings"), "--max-items", "1"]
        )

        assert result.exit_code == 0
        assert len(json.loads(paths["index"].read_text(encoding="utf-8"))) == 1

    def test_unconfigured_folder_fails(self, paths) -> None:
        result = runner.invoke(app, ["reconcile", *_args(paths, "index", "storage", "settings")])

        assert result.exit_code == 1
        assert "aborted" in result.stdout
        assert not paths["index"].exists()


class TestShowCommand:
    def test_empty(self, paths) -> None:
        result = runner.invoke(app, ["show", *_args(paths, "index")])
        assert result.exit_code == 0
        assert "Index is empty" in result.stdout

    def test_lists_entries(self, paths) -> None:
        PropertyStore(paths["settings"]).set_folder("uploads")
        runner.invoke(app, ["reconcile", *_args(paths, "index", "storage", "settings")])

        result = runner.invoke(app, ["show", *_args(paths, "index")])

        assert result.exit_code == 0
        assert "2 entries in index" in result.stdout


class TestClearCommand:
    def test_nothing_to_clear(self, paths) -> None:
        result = runner.invoke(app, ["clear", "--yes", *_args(paths, "index")])
        assert "nothing to clear" in result.stdout

    def test_clears(self, paths) -> None:
        paths["index"].write_text("[]", encoding="utf-8")

        result = runner.invoke(app, ["clear", "--yes", *_args(paths, "index")])

        assert result.exit_code == 0
        assert not paths["index"].exists()

    def test_declined_confirmation_keeps_index(self, paths) -> None:
        paths["index"].write_text("[]", encoding="utf-8")

        result = runner.invoke(app, ["clear", *_args(paths, "index")], input="n\n")

        assert result.exit_code != 0
        assert paths["index"].exists()

    @patch("photofeed.cli.clear_index", side_effect=LockUnavailableError("held by another pass"))
    def test_busy_index_is_kept(self, mock_clear: MagicMock, paths) -> None:
        paths["index"].write_text("[]", encoding="utf-8")

        result = runner.invoke(app, ["clear", "--yes", *_args(paths, "index")])

        assert result.exit_code == 1
        assert "busy" in result.stdout
        assert paths["index"].exists()

    def test_clear_leaves_no_lock_file(self, paths) -> None:
        paths["index"].write_text("[]", encoding="utf-8")

        runner.invoke(app, ["clear", "--yes", *_args(paths, "index")])

        assert not lock_path_for(paths["index"]).exists()


class TestWatchCommand:
    @patch("photofeed.cli.PeriodicTrigger")
    def test_runs_trigger(self, mock_trigger_class: MagicMock, paths) -> None:
        mock_trigger = MagicMock()
        mock_trigger.run_forever.side_effect = KeyboardInterrupt
        mock_trigger_class.return_value = mock_trigger

        result = runner.invoke(
            app, ["watch", *_args(paths, "index", "storage", "settings"), "--interval", "5"]
        )

        assert result.exit_code == 0
        assert mock_trigger_class.call_args[0][1] == 5
        mock_trigger.stop.assert_called_once()
        assert "Stopped" in result.stdout

    def test_rejects_zero_interval(self, paths) -> None:
        result = runner.invoke(app, ["watch", *_args(paths, "index"), "--interval", "0"])
        assert result.exit_code != 0


class TestWebCommand:
    def test_starts_uvicorn(self, paths) -> None:
        uvicorn = pytest.importorskip("uvicorn")
        with patch.object(uvicorn, "run") as mock_run:
            result = runner.invoke(
                app, ["web", "--port", "9001", *_args(paths, "index", "storage", "settings")]
            )

        assert result.exit_code == 0
        assert mock_run.call_args[1]["port"] == 9001


class TestSharedOptions:
    """Every command accepts the path overrides and --verbose."""

    @pytest.mark.parametrize(
        "command",
        [["set-folder", "uploads"], ["clear", "--yes"], ["show"], ["reconcile"]],
    )
    def test_accepts_all_overrides(self, command, paths) -> None:
        PropertyStore(paths["settings"]).set_folder("uploads")

        result = runner.invoke(app, [*command, *_args(paths, "index", "storage", "settings"), "--verbose"])

        assert result.exit_code == 0
