"""
Tests for Platform Capabilities.

This test suite covers:
1. Copy primitives (missing source, occupied destination)
2. Removal with empty-parent pruning
3. FileCopyPlatform kinds (native files, assets, js-modules)
4. PlatformRegistry lookup
5. PlatformProject collaborator
"""

import tempfile
from pathlib import Path

import pytest

from graft.plugin.ledger import InstalledModuleLedger
from graft.plugin.manifest import Artifact
from graft.plugin.platforms import (
    ArtifactNotFoundError,
    DestinationCollisionError,
    FileCopyPlatform,
    PlatformCapability,
    PlatformError,
    PlatformRegistry,
    UnknownPlatformError,
    copy_file,
    copy_new_file,
    create_default_registry,
    remove_file_and_parents,
    wrap_module,
)
from graft.plugin.project import PlatformProject, ProjectLocations


def write(path: Path, text: str = "content") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class TestCopyPrimitives:
    """Test file primitives."""

    def test_copy_file(self):
        with tempfile.TemporaryDirectory() as plugin_dir, tempfile.TemporaryDirectory() as project_dir:
            write(Path(plugin_dir) / "src" / "a.m", "code")

            target = copy_file(plugin_dir, "src/a.m", project_dir, "Classes/a.m")

            assert target.read_text() == "code"

    def test_copy_missing_source(self):
        with tempfile.TemporaryDirectory() as plugin_dir, tempfile.TemporaryDirectory() as project_dir:
            with pytest.raises(ArtifactNotFoundError, match="not found") as exc_info:
                copy_file(plugin_dir, "nope.m", project_dir, "nope.m")

            assert exc_info.value.path.endswith("nope.m")

    def test_copy_new_file_collision(self):
        with tempfile.TemporaryDirectory() as plugin_dir, tempfile.TemporaryDirectory() as project_dir:
            write(Path(plugin_dir) / "a.m")
            write(Path(project_dir) / "a.m", "existing")

            with pytest.raises(DestinationCollisionError, match="already exists"):
                copy_new_file(plugin_dir, "a.m", project_dir, "a.m")

            assert (Path(project_dir) / "a.m").read_text() == "existing"

    def test_copy_link(self):
        with tempfile.TemporaryDirectory() as plugin_dir, tempfile.TemporaryDirectory() as project_dir:
            write(Path(plugin_dir) / "a.m", "linked")

            target = copy_file(plugin_dir, "a.m", project_dir, "dir/a.m", link=True)

            assert target.is_symlink()
            assert target.read_text() == "linked"

    def test_remove_file_and_parents(self):
        with tempfile.TemporaryDirectory() as project_dir:
            root = Path(project_dir)
            write(root / "src" / "org" / "cam" / "A.java")
            write(root / "src" / "keep.txt")

            remove_file_and_parents(root, "src/org/cam/A.java")

            assert not (root / "src" / "org").exists()
            assert (root / "src" / "keep.txt").exists()

    def test_remove_stops_at_base(self):
        with tempfile.TemporaryDirectory() as project_dir:
            root = Path(project_dir) / "www"
            write(root / "a.js")

            remove_file_and_parents(root, "a.js")

            assert root.exists()

    def test_remove_missing_is_noop(self):
        with tempfile.TemporaryDirectory() as project_dir:
            remove_file_and_parents(project_dir, "never/there.js")


class TestFileCopyPlatform:
    """Test the reference capability."""

    def test_satisfies_protocol(self):
        assert isinstance(FileCopyPlatform("ios"), PlatformCapability)

    def test_native_file_into_target_dir(self):
        with tempfile.TemporaryDirectory() as plugin_dir, tempfile.TemporaryDirectory() as project_dir:
            write(Path(plugin_dir) / "src" / "ios" / "Cam.m", "objc")
            platform = FileCopyPlatform("ios")
            artifact = Artifact("source-file", {"src": "src/ios/Cam.m", "target-dir": "Classes"})

            platform.install("source-file", artifact, Path(plugin_dir), Path(project_dir), "org.cam", None)
            assert (Path(project_dir) / "Classes" / "Cam.m").read_text() == "objc"

            platform.uninstall("source-file", artifact, Path(project_dir), "org.cam", None)
            assert not (Path(project_dir) / "Classes").exists()

    def test_asset_into_www(self):
        with tempfile.TemporaryDirectory() as plugin_dir, tempfile.TemporaryDirectory() as project_dir:
            write(Path(plugin_dir) / "www" / "cam.css", "css")
            platform = FileCopyPlatform("browser", www_dir="public")
            artifact = Artifact("asset", {"src": "www/cam.css", "target": "css/cam.css"})

            platform.install("asset", artifact, Path(plugin_dir), Path(project_dir), "org.cam", None)
            assert (Path(project_dir) / "public" / "css" / "cam.css").read_text() == "css"

            platform.uninstall("asset", artifact, Path(project_dir), "org.cam", None)
            assert not (Path(project_dir) / "public" / "css").exists()

    def test_js_module_wrapped(self):
        with tempfile.TemporaryDirectory() as plugin_dir, tempfile.TemporaryDirectory() as project_dir:
            write(Path(plugin_dir) / "www" / "camera.js", "\ufeffexports.x = 1;")
            platform = FileCopyPlatform("ios")
            artifact = Artifact("js-module", {"src": "www/camera.js", "name": "Camera"})

            platform.install("js-module", artifact, Path(plugin_dir), Path(project_dir), "org.cam", None)

            output = Path(project_dir) / "www" / "plugins" / "org.cam" / "www" / "camera.js"
            assert output.read_text() == (
                'graft.define("org.cam.Camera", function(require, exports, module) { exports.x = 1;\n});\n'
            )

            platform.uninstall("js-module", artifact, Path(project_dir), "org.cam", None)
            assert not (Path(project_dir) / "www" / "plugins").exists()

    def test_occupied_destinations_refused(self):
        """Assets and modules never overwrite what is already there."""
        with tempfile.TemporaryDirectory() as plugin_dir, tempfile.TemporaryDirectory() as project_dir:
            write(Path(plugin_dir) / "www" / "index.html", "plugin")
            write(Path(plugin_dir) / "www" / "camera.js", "exports.x = 1;")
            write(Path(project_dir) / "www" / "index.html", "user")
            module_file = write(Path(project_dir) / "www" / "plugins" / "org.cam" / "www" / "camera.js", "stale")
            platform = FileCopyPlatform("ios")

            with pytest.raises(DestinationCollisionError):
                platform.install(
                    "asset",
                    Artifact("asset", {"src": "www/index.html", "target": "index.html"}),
                    Path(plugin_dir),
                    Path(project_dir),
                    "org.cam",
                    None,
                )
            with pytest.raises(DestinationCollisionError):
                platform.install(
                    "js-module",
                    Artifact("js-module", {"src": "www/camera.js"}),
                    Path(plugin_dir),
                    Path(project_dir),
                    "org.cam",
                    None,
                )

            assert (Path(project_dir) / "www" / "index.html").read_text() == "user"
            assert module_file.read_text() == "stale"

    def test_json_module(self):
        assert wrap_module("p.data", '{"a": 1}', is_json=True) == (
            'graft.define("p.data", function(require, exports, module) { module.exports = {"a": 1}\n});\n'
        )

    def test_missing_required_attribute(self):
        platform = FileCopyPlatform("ios")
        with pytest.raises(PlatformError, match="required 'target'"):
            platform.install("asset", Artifact("asset", {"src": "a"}), Path("/p"), Path("/q"), "x", None)

    def test_unsupported_kind(self):
        platform = FileCopyPlatform("ios")
        with pytest.raises(PlatformError, match="Unsupported artifact kind"):
            platform.install("config-file", Artifact("config-file", {}), Path("/p"), Path("/q"), "x", None)


class TestPlatformRegistry:
    """Test registry lookup."""

    def test_register_and_get(self):
        registry = PlatformRegistry()
        ios = FileCopyPlatform("ios")
        registry.register(ios)

        assert registry.get("ios") is ios
        assert registry.names() == ["ios"]
        assert "ios" in registry

    def test_reregister_replaces(self):
        registry = PlatformRegistry()
        registry.register(FileCopyPlatform("ios"))
        replacement = FileCopyPlatform("ios", www_dir="public")
        registry.register(replacement)

        assert registry.get("ios") is replacement
        assert registry.names() == ["ios"]

    def test_unknown_platform(self):
        with pytest.raises(UnknownPlatformError, match="Unknown platform: windows"):
            create_default_registry().get("windows")


class TestPlatformProject:
    """Test the project collaborator."""

    def test_installers_bound_to_kind(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            locations = ProjectLocations(root, root / "www", root / "platform_www", root / "plugins")
            project = PlatformProject.open(FileCopyPlatform("ios", kinds=["asset"]), locations)

            assert project.kinds == ("asset",)
            assert project.get_installer("asset").args == ("asset",)
            with pytest.raises(PlatformError, match="no handler"):
                project.get_uninstaller("framework")

    def test_write_saves_ledger(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            locations = ProjectLocations(root, root / "www", root / "platform_www", root / "plugins")
            project = PlatformProject(
                FileCopyPlatform("ios"), locations, InstalledModuleLedger(root / "plugins" / "ios.json", "ios")
            )

            project.write()

            assert (root / "plugins" / "ios.json").exists()
