from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from rnkit.core.config import ConfigManager, get_cached_config
from rnkit.core.config.domains import AttachConfig, LoggingConfig, PathsConfig, TimeoutsConfig, WiringConfig
from rnkit.core.utils.merge import deep_merge, merge_arrays
from rnkit.data import get_data_path


def _project_config(root: Path, data: dict) -> Path:
    path = root / ".rns" / "config.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def test_bundled_defaults(tmp_path: Path) -> None:
    cfg = ConfigManager(tmp_path).load_config()
    assert cfg["paths"]["state_file"] == ".rn-init.json"
    assert cfg["wiring"]["markers"]["providers"]["file"] == "packages/@rns/runtime/index.tsx"
    assert cfg["timeouts"]["package_install_seconds"] == 600


def test_project_config_overrides_defaults(tmp_path: Path) -> None:
    _project_config(tmp_path, {"paths": {"backups_dir": ".backups"}, "logging": {"level": "debug"}})
    paths = PathsConfig(tmp_path)
    assert paths.backups_dir == ".backups"
    assert paths.state_file == ".rn-init.json"
    assert LoggingConfig(tmp_path).level == "DEBUG"


def test_env_overrides_win_and_are_coerced(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _project_config(tmp_path, {"timeouts": {"package_install_seconds": 30}})
    monkeypatch.setenv("RNKIT_TIMEOUTS__PACKAGE_INSTALL_SECONDS", "5")
    monkeypatch.setenv("RNKIT_WIRING__SYSTEM_ZONES", '["packages/**"]')
    monkeypatch.setenv("RNKIT_LOGGING__LEVEL", "warning")

    cfg = ConfigManager(tmp_path).load_config()
    assert cfg["timeouts"]["package_install_seconds"] == 5
    assert cfg["wiring"]["system_zones"] == ["packages/**"]
    assert TimeoutsConfig(tmp_path).package_install_seconds == 5.0
    assert WiringConfig(tmp_path).system_zones == ("packages/**",)


def test_malformed_env_key_is_rejected(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RNKIT_PATHS____STATE_FILE", "x")
    with pytest.raises(ValueError, match="empty segment"):
        ConfigManager(tmp_path).load_config()


def test_invalid_project_yaml_fails_closed(tmp_path: Path) -> None:
    path = tmp_path / ".rns" / "config.yaml"
    path.parent.mkdir(parents=True)
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError, match="must contain a mapping"):
        ConfigManager(tmp_path).load_config()


def test_get_dotted_key(tmp_path: Path) -> None:
    mgr = ConfigManager(tmp_path)
    assert mgr.get("paths.modules_dir") == "src/modules"
    assert mgr.get("paths.nope", "fallback") == "fallback"


def test_save_project_overrides_merges(tmp_path: Path) -> None:
    _project_config(tmp_path, {"paths": {"backups_dir": ".backups"}})
    written = ConfigManager(tmp_path).save_project_overrides({"paths": {"logs_dir": ".logs"}})
    data = yaml.safe_load(written.read_text(encoding="utf-8"))
    assert data["paths"] == {"backups_dir": ".backups", "logs_dir": ".logs"}


def test_cached_config_sees_project_edits(tmp_path: Path) -> None:
    assert get_cached_config(tmp_path)["paths"]["modules_dir"] == "src/modules"
    path = _project_config(tmp_path, {"paths": {"modules_dir": "app/modules"}})
    assert path.exists()
    assert get_cached_config(tmp_path)["paths"]["modules_dir"] == "app/modules"


def test_templates_root_resolution(tmp_path: Path) -> None:
    assert PathsConfig(tmp_path).templates_root == get_data_path("templates")
    _project_config(tmp_path, {"paths": {"templates_root": "tpl", "extra_templates_roots": ["/opt/packs"]}})
    paths = PathsConfig(tmp_path)
    assert paths.templates_root == tmp_path / "tpl"
    assert paths.all_templates_roots == [tmp_path / "tpl", Path("/opt/packs")]


def test_explicit_config_bypasses_loading(tmp_path: Path) -> None:
    attach = AttachConfig(tmp_path, config={"attach": {"ignore_patterns": ["*.md"]}})
    assert attach.ignore_patterns == ("*.md",)
    assert "pack.json" in AttachConfig(tmp_path, config={}).ignore_patterns


def test_wiring_markers_keep_configuration_order(tmp_path: Path) -> None:
    markers = WiringConfig(tmp_path).markers
    assert list(markers) == ["imports", "providers", "root", "init-steps", "registrations"]
    assert markers["registrations"].required is False
    assert markers["imports"].start == "@rns-marker:imports:start"


def test_deep_merge_array_prefixes() -> None:
    assert deep_merge({"a": {"b": 1}, "l": [1]}, {"a": {"c": 2}, "l": ["+", 2]}) == {"a": {"b": 1, "c": 2}, "l": [1, 2]}
    assert merge_arrays([1, 2], ["=", 3]) == [3]
    assert merge_arrays([1, 2], []) == [1, 2]
