import pytest
import yaml

from upright.config import DEFAULT_CONFIG, default_config, load_config, save_config
from upright.paths import exclude_list, input_dir_from_cfg, output_dir_for_input


def test_defaults_when_no_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert load_config(None) == DEFAULT_CONFIG


def test_missing_explicit_path_returns_defaults(tmp_path):
    assert load_config(str(tmp_path / "missing.yaml")) == DEFAULT_CONFIG


def test_default_config_is_a_copy():
    cfg = default_config()
    cfg["output"]["quality"] = 1
    assert DEFAULT_CONFIG["output"]["quality"] == 92


def test_yaml_overrides_are_deep_merged(tmp_path):
    path = tmp_path / "upright.yaml"
    path.write_text(
        "input_dir: /photos\noutput:\n  format: jpeg\nlogging:\n  level: DEBUG\n",
        encoding="utf-8",
    )
    cfg = load_config(str(path))
    assert cfg["input_dir"] == "/photos"
    assert cfg["output"]["format"] == "jpeg"
    assert cfg["output"]["quality"] == 92
    assert cfg["logging"] == {"level": "DEBUG", "file": None}


def test_default_file_in_working_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "upright.yaml").write_text("concurrency: 1\n", encoding="utf-8")
    assert load_config(None)["concurrency"] == 1


def test_non_mapping_yaml_is_rejected(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_save_and_reload(tmp_path):
    cfg = default_config()
    cfg["output"]["long_edge"] = 1024
    path = tmp_path / "saved.yaml"
    save_config(str(path), cfg)
    saved = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert saved["output"]["long_edge"] == 1024
    assert load_config(str(path)) == cfg


def test_exclude_list_adds_output_dir(tmp_path):
    cfg = default_config()
    cfg["input_dir"] = str(tmp_path)
    cfg["exclude_dirs"] = ["cache", "cache"]
    output_dir = output_dir_for_input(input_dir_from_cfg(cfg))
    assert output_dir == tmp_path / "upright"
    assert exclude_list(cfg) == ["cache", str(output_dir)]
