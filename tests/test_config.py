from __future__ import annotations

from pathlib import Path

import pytest

from chainhash.config import AppConfig, load_app_config
from chainhash.contracts.error import BadInputError


def test_default_config_validates() -> None:
    cfg = load_app_config(None)
    assert cfg.table.initial_capacity == 16
    assert cfg.table.large_table_warn_threshold == 1_000_000
    assert cfg.demo.students == 200


def test_load_from_toml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    cfg_path = tmp_path / "config.toml"
    cfg_path.write_text(
        """
[table]
initial_capacity = 64
large_table_warn_threshold = 4096

[demo]
students = 25
""",
        encoding="utf-8",
    )
    cfg = load_app_config(str(cfg_path))
    assert cfg.table.initial_capacity == 64
    assert cfg.table.large_table_warn_threshold == 4096
    assert cfg.demo.students == 25

    # env override takes precedence
    monkeypatch.setenv("CHAINHASH_INITIAL_CAPACITY", "128")
    monkeypatch.setenv("CHAINHASH_DEMO_STUDENTS", "3")
    cfg_env = AppConfig.load(cfg_path)
    assert cfg_env.table.initial_capacity == 128
    assert cfg_env.demo.students == 3
    assert cfg_env.table.large_table_warn_threshold == 4096


def test_invalid_values_raise(tmp_path: Path) -> None:
    bad_path = tmp_path / "bad.toml"
    bad_path.write_text("[table]\ninitial_capacity = -1\n", encoding="utf-8")
    with pytest.raises(BadInputError):
        load_app_config(str(bad_path))

    bad_demo = tmp_path / "bad_demo.toml"
    bad_demo.write_text("[demo]\nstudents = -3\n", encoding="utf-8")
    with pytest.raises(BadInputError):
        load_app_config(str(bad_demo))


@pytest.mark.parametrize(
    ("section", "body", "name"),
    [
        ("demo", 'students = "many"', "demo.students"),
        ("table", "large_table_warn_threshold = 1.5", "table.large_table_warn_threshold"),
        ("table", "initial_capacity = true", "table.initial_capacity"),
    ],
)
def test_non_integer_values_raise_bad_input(
    tmp_path: Path, section: str, body: str, name: str
) -> None:
    cfg_path = tmp_path / "typed.toml"
    cfg_path.write_text(f"[{section}]\n{body}\n", encoding="utf-8")
    with pytest.raises(BadInputError, match=f"{name} must be an integer"):
        load_app_config(str(cfg_path))


def test_unknown_key_and_bad_sections(tmp_path: Path) -> None:
    unknown = tmp_path / "unknown.toml"
    unknown.write_text("[table]\nload_factor = 0.5\n", encoding="utf-8")
    with pytest.raises(BadInputError, match="Unknown config key"):
        load_app_config(str(unknown))

    with pytest.raises(BadInputError, match=r"\[table\] section"):
        AppConfig.from_dict({"table": 5})
    with pytest.raises(BadInputError, match=r"\[demo\] section"):
        AppConfig.from_dict({"demo": "x"})


def test_missing_and_malformed_files(tmp_path: Path) -> None:
    with pytest.raises(BadInputError, match="not found"):
        load_app_config(str(tmp_path / "nope.toml"))
    broken = tmp_path / "broken.toml"
    broken.write_text("[table\n", encoding="utf-8")
    with pytest.raises(BadInputError, match="Invalid TOML"):
        load_app_config(str(broken))


def test_bad_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHAINHASH_LARGE_WARN_THRESHOLD", "lots")
    with pytest.raises(BadInputError, match="CHAINHASH_LARGE_WARN_THRESHOLD"):
        load_app_config(None)
