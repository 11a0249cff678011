import pytest

from bfvm import ConfigError, VMConfig, load_config
from bfvm.config import env_overrides, load_yaml_config


def test_defaults_match_conventional_tape():
    cfg = VMConfig()
    assert cfg.tape_length == 30000
    assert cfg.cell_max == 255
    assert cfg.step_limit is None
    assert cfg.skip_scan == "nested"
    assert cfg.precompile is False


def test_yaml_nested_under_vm_key(tmp_path):
    path = tmp_path / "bfvm.yaml"
    path.write_text("vm:\n  tape_length: 16\n  skip_scan: legacy\n  precompile: true\n")
    cfg = load_config(str(path), environ={})
    assert cfg.tape_length == 16
    assert cfg.skip_scan == "legacy"
    assert cfg.precompile is True


def test_yaml_flat_mapping(tmp_path):
    path = tmp_path / "bfvm.yaml"
    path.write_text("cell_max: 15\nstep_limit: 1000\n")
    assert load_yaml_config(str(path)) == {"cell_max": 15, "step_limit": 1000}


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(str(path), environ={}) == VMConfig()


def test_environment_beats_yaml_and_overrides_beat_environment(tmp_path):
    path = tmp_path / "bfvm.yaml"
    path.write_text("tape_length: 16\ncell_max: 15\n")
    environ = {"BFVM_TAPE_LENGTH": "8", "BFVM_CELL_MAX": "7", "BFVM_PRECOMPILE": "yes"}
    cfg = load_config(str(path), overrides={"cell_max": 3, "step_limit": None}, environ=environ)
    assert cfg.tape_length == 8
    assert cfg.cell_max == 3
    assert cfg.precompile is True
    assert cfg.step_limit is None


def test_env_overrides_ignores_unrelated_and_blank_variables():
    environ = {"BFVM_STEP_LIMIT": "10", "BFVM_SKIP_SCAN": "", "PATH": "/bin"}
    assert env_overrides(environ) == {"step_limit": "10"}


def test_unknown_yaml_key_is_rejected(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("tape_size: 10\n")
    with pytest.raises(ConfigError):
        load_config(str(path), environ={})


def test_non_mapping_yaml_is_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ConfigError):
        load_yaml_config(str(path))


@pytest.mark.parametrize("overrides", [
    {"tape_length": 0},
    {"cell_max": 0},
    {"step_limit": 0},
    {"skip_scan": "greedy"},
    {"tape_length": "lots"},
    {"tape_length": 3.7},
    {"step_limit": "2.5"},
    {"precompile": "maybe"},
])
def test_invalid_values_raise_config_error(overrides):
    with pytest.raises(ConfigError):
        VMConfig().merged(overrides)


def test_config_error_is_a_value_error():
    assert issubclass(ConfigError, ValueError)


def test_fractional_tape_length_in_yaml_is_rejected(tmp_path):
    path = tmp_path / "frac.yaml"
    path.write_text("tape_length: 3.7\n")
    with pytest.raises(ConfigError, match="tape_length"):
        load_config(str(path), environ={})
