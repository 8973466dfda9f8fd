"""Tests for the docsync command line."""

import json

import pytest

from docsync.cli import build_parser, main


@pytest.fixture
def run(db_path, capsys):
    """Run the CLI against the test database and return its stdout."""

    def invoke(*argv):
        main(["--db", str(db_path), *argv])
        return capsys.readouterr().out

    return invoke


class TestParser:
    def test_add_options(self):
        args = build_parser().parse_args(
            ["add", "/tmp/docs", "--ext", "md", "--ext", "txt", "--no-recursive"]
        )
        assert args.character == "default"
        assert args.ext == ["md", "txt"]
        assert args.no_recursive is True

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestFolderCommands:
    """Test registering and managing folders from the CLI."""

    def test_add_then_list(self, run, sample_folder):
        run("add", str(sample_folder), "--character", "agent-1", "--name", "Project")
        folders = json.loads(run("list", "--json"))
        assert len(folders) == 1
        assert folders[0]["displayName"] == "Project"
        assert folders[0]["status"] == "pending"
        assert folders[0]["characterId"] == "agent-1"

    def test_add_missing_directory(self, run, tmp_path):
        with pytest.raises(SystemExit) as exc:
            run("add", str(tmp_path / "missing"))
        assert exc.value.code == 1

    def test_pause_and_resume_by_path(self, run, sample_folder):
        run("add", str(sample_folder))
        run("pause", str(sample_folder))
        assert json.loads(run("list", "--json"))[0]["status"] == "paused"
        run("resume", str(sample_folder))
        assert json.loads(run("list", "--json"))[0]["status"] == "pending"

    def test_remove(self, run, sample_folder):
        run("add", str(sample_folder))
        folder_id = json.loads(run("list", "--json"))[0]["id"]
        run("remove", folder_id)
        assert json.loads(run("list", "--json")) == []

    def test_remove_unknown(self, run):
        with pytest.raises(SystemExit) as exc:
            run("remove", "no-such-folder")
        assert exc.value.code == 1

    def test_status(self, run, sample_folder):
        run("add", str(sample_folder))
        report = json.loads(run("status"))
        assert report["isEnabled"] is True
        assert report["totalFolders"] == 1
        assert len(report["pendingSyncs"]) == 1
        assert report["totalSyncingOrPending"] == 1


class TestConfigHandling:
    def test_invalid_config_exits_2(self, run, monkeypatch):
        monkeypatch.setenv("DOCSYNC_RRF_K", "thirty")
        with pytest.raises(SystemExit) as exc:
            run("status")
        assert exc.value.code == 2

    def test_disabled_blocks_sync(self, run, monkeypatch):
        monkeypatch.setenv("DOCSYNC_ENABLED", "false")
        with pytest.raises(SystemExit) as exc:
            run("sync")
        assert exc.value.code == 1

    def test_disabled_status_is_empty(self, run, monkeypatch):
        monkeypatch.setenv("DOCSYNC_ENABLED", "false")
        report = json.loads(run("status"))
        assert report["isEnabled"] is False
        assert report["totalFolders"] == 0
