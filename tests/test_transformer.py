"""End-to-end tests of the transform callback with a stand-in Transcrypt."""

import json
import logging
from pathlib import Path

import pytest

from transcrypt_bridge.config import PACKAGE_KEY, PluginConfig
from transcrypt_bridge.errors import ConfigurationError, ToolchainExecutionError
from transcrypt_bridge.host import BuildOptions, SourceAsset
from transcrypt_bridge.toolchain.version import Version
from transcrypt_bridge.transformer import generated_code, import_path, load_config, transform
from tests.helpers.process_factory import install_toolchain


def compile_writes_manifest(project: Path, outdir: str = ".build", modules=None):
    """Build an action that mimics Transcrypt writing its run manifest."""
    if modules is None:
        modules = [
            {"source": "src/app.py"},
            {"source": "src/lib/util.py"},
            {"source": "/venv/site-packages/transcrypt/modules/org/transcrypt/__runtime__.py"},
        ]

    def action(args, kwargs):
        target = Path(kwargs["cwd"]) / outdir
        target.mkdir(parents=True, exist_ok=True)
        (target / "app.project").write_text(json.dumps({"modules": modules}), encoding="utf-8")
        (target / "app.js").write_text("export var x = 1;\n", encoding="utf-8")

    return action


class TestImportPath:
    @pytest.mark.parametrize("output_dir, expected", [
        ("../.build", "../.build/app.js"),
        ("../../web/js", "../../web/js/app.js"),
        (".build", "./.build/app.js"),
        ("__target__", "./__target__/app.js"),
    ])
    def test_prefix(self, output_dir, expected):
        assert import_path(output_dir, "app") == expected

    def test_generated_code(self):
        assert generated_code("../.build/app.js") == 'export * from "../.build/app.js";'


class TestLoadConfig:
    def test_without_package_json(self, tmp_path):
        assert load_config(tmp_path) is None

    def test_with_section(self, tmp_path):
        (tmp_path / "package.json").write_text(
            json.dumps({"name": "demo", PACKAGE_KEY: {"watchAllFiles": False}}), encoding="utf-8"
        )
        assert load_config(tmp_path) == PluginConfig(watch_all_files=False)


class TestTransform:
    def test_production_build(self, project, fake_processes):
        """Defaults in production: one --outdir, no manifest read, re-export of ../.build/app.js."""
        install_toolchain(fake_processes)
        fake_processes.respond("src/app.py", action=compile_writes_manifest(project))
        asset = SourceAsset(file_path=project / "src" / "app.py")

        result = transform(asset, None, BuildOptions(project_root=project, mode="production"))

        assert result == [asset]
        assert asset.code == 'export * from "../.build/app.js";'
        assert asset.type == "js"
        assert asset.watched == []
        compile_call = fake_processes.calls[-1]
        assert compile_call["args"].count("--outdir") == 1
        assert compile_call["cwd"] == str(project)

    def test_development_build_watches_project_modules(self, project, fake_processes):
        fake_processes.respond("src/app.py", action=compile_writes_manifest(project))
        asset = SourceAsset(file_path=project / "src" / "app.py")

        transform(asset, PluginConfig(), BuildOptions(project_root=project), detected_version=Version(3, 9))

        assert set(asset.watched) == {
            project / "src" / "app.py",
            project / "src" / "lib" / "util.py",
        }

    def test_watch_only_entry_file(self, project, fake_processes):
        fake_processes.respond("src/app.py", action=compile_writes_manifest(project))
        asset = SourceAsset(file_path=project / "src" / "app.py")

        transform(
            asset,
            PluginConfig(watch_all_files=False),
            BuildOptions(project_root=project),
            detected_version=Version(3, 9),
        )

        assert asset.watched == [project / "src" / "app.py"]

    def test_missing_manifest_is_not_fatal(self, project, fake_processes, caplog):
        fake_processes.respond("src/app.py")
        asset = SourceAsset(file_path=project / "src" / "app.py")

        transform(asset, None, BuildOptions(project_root=project), detected_version=Version(3, 9))

        assert asset.code == 'export * from "../.build/app.js";'
        assert asset.watched == []
        assert "Unable to load Transcrypt project file" in caplog.text

    def test_legacy_transcrypt(self, project, fake_processes):
        fake_processes.respond(
            "src/app.py",
            action=compile_writes_manifest(project, outdir="src/__target__", modules=[{"source": "src/app.py"}]),
        )
        asset = SourceAsset(file_path=project / "src" / "app.py")

        transform(asset, None, BuildOptions(project_root=project), detected_version=Version(3, 7))

        assert asset.code == 'export * from "./__target__/app.js";'
        assert "--outdir" not in fake_processes.calls[-1]["args"]
        assert asset.watched == [project / "src" / "app.py"]

    def test_user_outdir(self, project, fake_processes):
        fake_processes.respond("src/app.py")
        asset = SourceAsset(file_path=project / "src" / "app.py")
        config = PluginConfig(arguments=("--nomin", "--outdir web/js"))

        transform(asset, config, BuildOptions(project_root=project, mode="production"), detected_version=Version(3, 9))

        assert fake_processes.calls[-1]["args"][-3:] == ["--outdir", "../web/js", "src/app.py"]
        assert asset.code == 'export * from "../web/js/app.js";'

    def test_invalid_command_runs_nothing(self, project, fake_processes):
        asset = SourceAsset(file_path=project / "src" / "app.py")

        with pytest.raises(ConfigurationError):
            transform(asset, PluginConfig(command="ruby foo"), BuildOptions(project_root=project))

        assert fake_processes.calls == []
        assert asset.code is None

    def test_compile_failure(self, project, fake_processes, caplog):
        fake_processes.respond("src/app.py", stdout="Compiling...\n", stderr="SyntaxError\n", returncode=1)
        asset = SourceAsset(file_path=project / "src" / "app.py")
        host_logger = logging.getLogger("host")

        with pytest.raises(ToolchainExecutionError, match="SyntaxError"):
            transform(asset, None, BuildOptions(project_root=project), host_logger, Version(3, 9))

        assert asset.code is None
        assert asset.type == "py"
        assert any(record.name == "host" and "Compiling" in record.getMessage() for record in caplog.records)

    def test_reports_through_host_logger(self, project, fake_processes, caplog):
        fake_processes.respond("src/app.py", stdout="Saving target code\n")
        asset = SourceAsset(file_path=project / "src" / "app.py")
        host_logger = logging.getLogger("host")

        with caplog.at_level(logging.INFO, logger="host"):
            transform(asset, None, BuildOptions(project_root=project, mode="production"), host_logger, Version(3, 9))

        messages = [record.getMessage() for record in caplog.records if record.name == "host"]
        assert "python -m transcrypt --nomin --map --verbose --outdir ../.build src/app.py" in messages
        assert "Transcrypt build complete!" in messages


class TestBuildOptions:
    def test_rejects_unknown_mode(self, tmp_path):
        with pytest.raises(ValueError):
            BuildOptions(project_root=tmp_path, mode="staging")
