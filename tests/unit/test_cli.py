"""
Tests for the gpm command line.

This test suite covers:
1. Help and argument errors
2. --init
3. -S / -Q / -R round trip against a temporary project
4. Error reporting and exit codes
"""

import json
import tempfile
from pathlib import Path
from unittest.mock import patch

from gpm.cli import main


def make_sources(base: Path) -> Path:
    sources = base / "sources"
    for plugin_id, deps in (("core", {}), ("app", {"core": ">=1.0.0"})):
        plugin_dir = sources / plugin_id
        plugin_dir.mkdir(parents=True)
        (plugin_dir / "manifest.json").write_text(
            json.dumps(
                {
                    "id": plugin_id,
                    "version": "1.0.0",
                    "dependencies": deps,
                    "platforms": {"android": {"asset": [{"src": "a.txt", "target": f"{plugin_id}.txt"}]}},
                }
            )
        )
        (plugin_dir / "a.txt").write_text(plugin_id)
    return sources


class TestArguments:
    """Test help and argument handling."""

    def test_help(self, capsys):
        assert main([]) == 0
        assert "gpm - Graft Plugin Manager" in capsys.readouterr().out

    def test_sync_without_targets(self, capsys):
        assert main(["-S", "--platform", "android"]) == 1
        assert "No targets specified" in capsys.readouterr().err

    def test_missing_platform(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            assert main(["-Q", "--project", tmpdir]) == 1
            assert "Error: No platform specified" in capsys.readouterr().err

    def test_unknown_platform(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            assert main(["-Q", "--platform", "windows", "--project", tmpdir]) == 1
            assert "Error: Unknown platform: windows" in capsys.readouterr().err


class TestInit:
    """Test --init."""

    def test_init(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            assert main(["--init", "--project", tmpdir]) == 0
            assert (Path(tmpdir) / "graft.toml").exists()

            assert main(["--init", "--project", tmpdir]) == 1
            assert "already exists" in capsys.readouterr().err


class TestRoundTrip:
    """Test install, query and remove."""

    def test_sync_query_remove(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            base = Path(tmpdir)
            sources = make_sources(base)
            project = base / "project"
            project.mkdir()
            common = ["--platform", "android", "--project", str(project), "--search-path", str(sources)]

            assert main(["-S", "app", *common]) == 0
            assert (project / "www" / "app.txt").read_text() == "app"
            assert (project / "www" / "core.txt").read_text() == "core"
            assert "Installed: core, app" in capsys.readouterr().out

            assert main(["-Q", *common]) == 0
            assert capsys.readouterr().out.splitlines() == [
                "core 1.0.0 (dependency)",
                "app 1.0.0",
            ]

            assert main(["-R", "app", "--noconfirm", *common]) == 0
            assert "Removed: app, core" in capsys.readouterr().out
            assert not (project / "www" / "app.txt").exists()

            assert main(["-Q", *common]) == 0
            assert capsys.readouterr().out == ""

    def test_remove_declined(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            with patch("builtins.input", return_value="n"):
                assert main(["-R", "app", "--platform", "android", "--project", tmpdir]) == 1

            assert "Aborted" in capsys.readouterr().out

    def test_library_error_exit_code(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            base = Path(tmpdir)
            sources = make_sources(base)

            code = main(
                ["-S", "ghost", "--platform", "android", "--project", str(base), "--search-path", str(sources)]
            )

            assert code == 1
            assert "Error: Plugin not found: ghost" in capsys.readouterr().err
