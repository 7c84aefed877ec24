"""Tests for aepsite.config — defaults, .aepsite.yml loading, environment."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from aepsite.config import (
    CONFIG_FILENAME,
    DEFAULT_SCAFFOLD_DIRS,
    DEFAULT_SG_DIRECTORY,
    SiteConfig,
    build_environment,
    default_config,
    environment_variables,
    load_config,
)
from aepsite.errors import ConfigError


def _write_config(project: Path, data: object) -> Path:
    path = project / CONFIG_FILENAME
    path.write_text(yaml.dump(data, default_flow_style=False), encoding="utf-8")
    return path


class TestDefaultConfig:
    def test_defaults_match_build_script(self, aep_project: Path) -> None:
        config = default_config(aep_project)
        assert config.sg_directory == DEFAULT_SG_DIRECTORY
        assert config.aep_location == aep_project
        assert config.scaffold_dirs == DEFAULT_SCAFFOLD_DIRS
        assert config.install_browsers is True
        assert config.browser == "chromium"

    def test_repository_order_and_paths(self, aep_project: Path, tmp_path: Path) -> None:
        sg = tmp_path / "sg"
        config = default_config(aep_project, sg)
        names = [r.name for r in config.repositories]
        assert names == ["site-generator", "api-linter", "aep-openapi-linter"]
        assert config.repository("site-generator").path == sg
        assert config.repository("api-linter").path == sg / "api-linter"
        assert config.repository("aep-openapi-linter").path == sg / "aep-openapi-linter"
        assert config.repository("api-linter").url == "https://github.com/aep-dev/api-linter.git"

    def test_unknown_repository(self, site_config: SiteConfig) -> None:
        with pytest.raises(KeyError):
            site_config.repository("nope")


class TestLoadConfig:
    def test_no_file_gives_defaults(self, aep_project: Path) -> None:
        config = load_config(aep_project)
        assert config == default_config(aep_project)
        assert config.source is None

    def test_empty_file(self, aep_project: Path) -> None:
        (aep_project / CONFIG_FILENAME).write_text("", encoding="utf-8")
        config = load_config(aep_project)
        assert config.sg_directory == DEFAULT_SG_DIRECTORY

    def test_sg_directory_from_file(self, aep_project: Path, tmp_path: Path) -> None:
        sg = tmp_path / "elsewhere"
        _write_config(aep_project, {"sg_directory": str(sg)})
        config = load_config(aep_project)
        assert config.sg_directory == sg
        assert config.repository("api-linter").path == sg / "api-linter"
        assert config.source == aep_project / CONFIG_FILENAME

    def test_relative_sg_directory_resolves_against_project(self, aep_project: Path) -> None:
        _write_config(aep_project, {"sg_directory": "build/sg"})
        config = load_config(aep_project)
        assert config.sg_directory == aep_project / "build" / "sg"

    def test_cli_override_wins(self, aep_project: Path, tmp_path: Path) -> None:
        _write_config(aep_project, {"sg_directory": str(tmp_path / "from-file")})
        config = load_config(aep_project, sg_directory=tmp_path / "from-cli")
        assert config.sg_directory == tmp_path / "from-cli"

    def test_repository_override_keeps_order(self, aep_project: Path, tmp_path: Path) -> None:
        _write_config(
            aep_project,
            {
                "sg_directory": str(tmp_path / "sg"),
                "repositories": {
                    "api-linter": {"url": "https://example.com/fork.git", "branch": "dev"},
                },
            },
        )
        config = load_config(aep_project)
        names = [r.name for r in config.repositories]
        assert names == ["site-generator", "api-linter", "aep-openapi-linter"]
        linter = config.repository("api-linter")
        assert linter.url == "https://example.com/fork.git"
        assert linter.branch == "dev"
        assert linter.path == tmp_path / "sg" / "api-linter"

    def test_extra_repository_appended(self, aep_project: Path, tmp_path: Path) -> None:
        _write_config(
            aep_project,
            {
                "sg_directory": str(tmp_path / "sg"),
                "repositories": {"extras": {"url": "https://example.com/extras.git"}},
            },
        )
        config = load_config(aep_project)
        assert config.repositories[-1].name == "extras"
        assert config.repositories[-1].path == tmp_path / "sg" / "extras"

    def test_extra_repository_requires_url(self, aep_project: Path) -> None:
        _write_config(aep_project, {"repositories": {"extras": {"branch": "main"}}})
        with pytest.raises(ConfigError, match="extras"):
            load_config(aep_project)

    def test_scaffold_and_browser_settings(self, aep_project: Path) -> None:
        _write_config(
            aep_project,
            {"scaffold_dirs": ["public/rules"], "install_browsers": False, "browser": "firefox"},
        )
        config = load_config(aep_project)
        assert config.scaffold_dirs == ("public/rules",)
        assert config.install_browsers is False
        assert config.browser == "firefox"

    def test_explicit_config_path(self, aep_project: Path, tmp_path: Path) -> None:
        other = tmp_path / "custom.yml"
        other.write_text("browser: webkit\n", encoding="utf-8")
        config = load_config(aep_project, other)
        assert config.browser == "webkit"
        assert config.source == other

    def test_explicit_config_path_missing(self, aep_project: Path, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_config(aep_project, tmp_path / "missing.yml")

    @pytest.mark.parametrize(
        ("data", "key"),
        [
            (["not", "a", "mapping"], "mapping"),
            ({"unexpected": 1}, "unexpected"),
            ({"sg_directory": 42}, "sg_directory"),
            ({"repositories": ["a"]}, "repositories"),
            ({"scaffold_dirs": "one/dir"}, "scaffold_dirs"),
            ({"install_browsers": "yes"}, "install_browsers"),
            ({"browser": ""}, "browser"),
            ({"repositories": {"api-linter": {"brnch": "dev"}}}, r"unknown key\(s\): brnch"),
            ({"scaffold_dirs": ["/abs"]}, "scaffold directory"),
            ({"scaffold_dirs": ["../outside"]}, "scaffold directory"),
        ],
    )
    def test_invalid_values(self, aep_project: Path, data: object, key: str) -> None:
        _write_config(aep_project, data)
        with pytest.raises(ConfigError, match=key):
            load_config(aep_project)

    def test_invalid_yaml(self, aep_project: Path) -> None:
        (aep_project / CONFIG_FILENAME).write_text("key: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="invalid YAML"):
            load_config(aep_project)


class TestEnvironment:
    def test_variables(self, aep_project: Path, tmp_path: Path) -> None:
        sg = tmp_path / "sg"
        variables = environment_variables(default_config(aep_project, sg))
        assert list(variables) == [
            "AEP_LOCATION",
            "SG_DIRECTORY",
            "AEP_LINTER_LOC",
            "AEP_OPENAPI_LINTER_LOC",
        ]
        assert variables["AEP_LOCATION"] == str(aep_project)
        assert variables["SG_DIRECTORY"] == str(sg)
        assert variables["AEP_LINTER_LOC"] == str(sg / "api-linter")
        assert variables["AEP_OPENAPI_LINTER_LOC"] == str(sg / "aep-openapi-linter")

    def test_linter_location_follows_repository_path(
        self, aep_project: Path, tmp_path: Path
    ) -> None:
        _write_config(
            aep_project,
            {"repositories": {"api-linter": {"path": str(tmp_path / "linter")}}},
        )
        variables = environment_variables(load_config(aep_project))
        assert variables["AEP_LINTER_LOC"] == str(tmp_path / "linter")

    def test_merged_over_base(self, site_config: SiteConfig) -> None:
        env = build_environment(site_config, {"PATH": "/usr/bin", "SG_DIRECTORY": "stale"})
        assert env["PATH"] == "/usr/bin"
        assert env["SG_DIRECTORY"] == str(site_config.sg_directory)

    def test_defaults_to_os_environ(
        self, site_config: SiteConfig, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("AEPSITE_TEST_MARKER", "1")
        env = build_environment(site_config)
        assert env["AEPSITE_TEST_MARKER"] == "1"
