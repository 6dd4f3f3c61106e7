"""
Tests for Plugin Lifecycle Hooks.

This test suite covers:
1. Event name -> declared script type mapping
2. Script discovery (global before platform)
3. Serial execution with a shared context
4. Missing scripts, failing scripts, disabled hooks
5. The default .py script loader
"""

import asyncio
import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from graft.core.event_bus import EventBus
from graft.plugin.hooks import (
    HookContext,
    HookRunner,
    HookScope,
    ScriptFailureError,
    UnknownHookTypeError,
)
from graft.plugin.loader import LoaderError, load_script
from graft.plugin.manifest import descriptor_from_dict


def make_plugin(plugin_dir: Path, scripts=(), platform_scripts=()):
    data = {
        "id": "org.example.hooks",
        "version": "1.0.0",
        "scripts": list(scripts),
        "platforms": {"ios": {"scripts": list(platform_scripts)}},
    }
    return descriptor_from_dict(data, plugin_dir)


def touch(plugin_dir: Path, *names: str) -> None:
    for name in names:
        path = plugin_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("")


class TestScriptDiscovery:
    """Test mapping of events to declared scripts."""

    def test_script_types_for_hook(self):
        assert HookRunner.get_script_types_for_hook("beforeinstall") == ("beforeinstall", "preinstall")
        assert HookRunner.get_script_types_for_hook("afterinstall") == (
            "install",
            "afterinstall",
            "postinstall",
        )
        assert HookRunner.get_script_types_for_hook("uninstall") == ("uninstall",)
        assert HookRunner.get_script_types_for_hook("prebuild") is None

    def test_global_before_platform(self):
        plugin = make_plugin(
            Path("/p"),
            scripts=[
                {"type": "postinstall", "src": "scripts/global.py"},
                {"type": "uninstall", "src": "scripts/remove.py"},
            ],
            platform_scripts=[{"type": "install", "src": "scripts/ios.py"}],
        )
        runner = HookRunner()

        files = runner.get_script_files(plugin, ("install", "afterinstall", "postinstall"), "ios")
        bindings = runner.get_hook_bindings(plugin, "ios")

        assert files == ["scripts/global.py", "scripts/ios.py"]
        assert [b.scope for b in bindings] == [HookScope.GLOBAL, HookScope.GLOBAL, HookScope.PLATFORM]

    def test_declared_type_case_insensitive(self):
        plugin = make_plugin(Path("/p"), scripts=[{"type": "BeforeInstall", "src": "a.py"}])

        assert HookRunner().get_script_files(plugin, ("beforeinstall",), "ios") == ["a.py"]

    def test_other_platform_scripts_ignored(self):
        plugin = make_plugin(Path("/p"), platform_scripts=[{"type": "install", "src": "ios.py"}])

        assert HookRunner().get_script_files(plugin, ("install",), "android") == []


class TestFire:
    """Test firing hook events."""

    def test_unknown_hook_fails_synchronously(self):
        """An unknown event raises before any script runs."""
        loader = MagicMock()
        runner = HookRunner(script_loader=loader)
        plugin = make_plugin(Path("/p"), scripts=[{"type": "install", "src": "a.py"}])

        with pytest.raises(UnknownHookTypeError, match="unknown plugin hook type"):
            runner.fire("prebuild", plugin.id, plugin, "ios", Path("/proj"), plugin.dir)

        loader.assert_not_called()

    @pytest.mark.asyncio
    async def test_scripts_run_serially_with_shared_context(self):
        """Each script is awaited before the next; all see the same context values."""
        with tempfile.TemporaryDirectory() as tmpdir:
            plugin_dir = Path(tmpdir)
            touch(plugin_dir, "one.py", "two.py")
            plugin = make_plugin(
                plugin_dir,
                scripts=[{"type": "install", "src": "one.py"}],
                platform_scripts=[{"type": "afterinstall", "src": "two.py"}],
            )
            log = []

            def loader(path):
                async def entry(context: HookContext):
                    log.append((path.name, "start", context.plugin_id, context.platform))
                    await asyncio.sleep(0.01)
                    log.append((path.name, "end", context.script_location))

                return entry

            runner = HookRunner(script_loader=loader)
            await runner.fire("afterinstall", plugin.id, plugin, "ios", Path("/proj"), plugin_dir)

            assert log == [
                ("one.py", "start", "org.example.hooks", "ios"),
                ("one.py", "end", plugin_dir / "one.py"),
                ("two.py", "start", "org.example.hooks", "ios"),
                ("two.py", "end", plugin_dir / "two.py"),
            ]

    @pytest.mark.asyncio
    async def test_missing_script_skipped_with_warning(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            plugin_dir = Path(tmpdir)
            touch(plugin_dir, "present.py")
            plugin = make_plugin(
                plugin_dir,
                scripts=[
                    {"type": "uninstall", "src": "missing.py"},
                    {"type": "uninstall", "src": "present.py"},
                ],
            )
            ran = []
            warnings_seen = []
            events = EventBus()
            events.register_event_consumer("log.warn", warnings_seen.append)

            runner = HookRunner(events, script_loader=lambda path: lambda ctx: ran.append(path.name))
            await runner.fire("uninstall", plugin.id, plugin, "ios", Path("/proj"), plugin_dir)

            assert ran == ["present.py"]
            assert len(warnings_seen) == 1
            assert "missing.py" in warnings_seen[0]

    @pytest.mark.asyncio
    async def test_failure_stops_batch(self):
        """A failing script stops the remaining scripts and is wrapped."""
        with tempfile.TemporaryDirectory() as tmpdir:
            plugin_dir = Path(tmpdir)
            touch(plugin_dir, "bad.py", "after.py")
            plugin = make_plugin(
                plugin_dir,
                scripts=[
                    {"type": "preinstall", "src": "bad.py"},
                    {"type": "preinstall", "src": "after.py"},
                ],
            )
            ran = []

            def loader(path):
                def entry(context):
                    ran.append(path.name)
                    if path.name == "bad.py":
                        raise RuntimeError("script exploded")

                return entry

            runner = HookRunner(script_loader=loader)
            with pytest.raises(ScriptFailureError, match="script exploded") as exc_info:
                await runner.fire("beforeinstall", plugin.id, plugin, "ios", Path("/proj"), plugin_dir)

            assert ran == ["bad.py"]
            assert exc_info.value.script == plugin_dir / "bad.py"
            assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_nohooks_disables_event(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            plugin_dir = Path(tmpdir)
            touch(plugin_dir, "a.py")
            plugin = make_plugin(plugin_dir, scripts=[{"type": "install", "src": "a.py"}])
            loader = MagicMock()

            runner = HookRunner(script_loader=loader, nohooks=["^after"])
            await runner.fire("afterinstall", plugin.id, plugin, "ios", Path("/proj"), plugin_dir)

            loader.assert_not_called()
            assert runner.is_hook_disabled("afterinstall")
            assert not runner.is_hook_disabled("uninstall")


class TestScriptLoader:
    """Test the default importlib-based loader."""

    def test_loads_run_function(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            script = Path(tmpdir) / "hook.py"
            script.write_text("def run(context):\n    return context * 2\n")

            entry = load_script(script)

            assert entry(21) == 42

    def test_falls_back_to_hook(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            script = Path(tmpdir) / "hook.py"
            script.write_text("hook = lambda context: 'hooked'\n")

            assert load_script(script)(None) == "hooked"

    def test_no_entry_point(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            script = Path(tmpdir) / "hook.py"
            script.write_text("value = 1\n")

            with pytest.raises(LoaderError, match="defines none of"):
                load_script(script)

    def test_import_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            script = Path(tmpdir) / "hook.py"
            script.write_text("raise ValueError('bad import')\n")

            with pytest.raises(LoaderError, match="bad import"):
                load_script(script)

    def test_unsupported_suffix(self):
        with pytest.raises(LoaderError, match="Unsupported hook script type"):
            load_script(Path("/tmp/hook.js"))

    @pytest.mark.asyncio
    async def test_end_to_end_with_real_script(self):
        """The runner hands a HookContext to a real script file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            plugin_dir = Path(tmpdir)
            out = plugin_dir / "out.txt"
            script = plugin_dir / "scripts" / "after.py"
            script.parent.mkdir()
            script.write_text(
                "from pathlib import Path\n"
                "def run(context):\n"
                "    (context.plugin_dir / 'out.txt').write_text(context.hook + ':' + context.platform)\n"
            )
            plugin = make_plugin(plugin_dir, scripts=[{"type": "afterinstall", "src": "scripts/after.py"}])

            await HookRunner().fire("afterinstall", plugin.id, plugin, "ios", Path("/proj"), plugin_dir)

            assert out.read_text() == "afterinstall:ios"
