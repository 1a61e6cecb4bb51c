"""Typed configuration loader for the chainhash CLI."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .contracts.error import BadInputError
from .core.maps import DEFAULT_INITIAL_CAPACITY


def _require_int(value: Any, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise BadInputError(f"{name} must be an integer")


@dataclass
class TablePolicy:
    initial_capacity: int = DEFAULT_INITIAL_CAPACITY
    large_table_warn_threshold: int = 1_000_000

    def validate(self) -> None:
        _require_int(self.initial_capacity, "table.initial_capacity")
        if self.initial_capacity < 0:
            raise BadInputError("table.initial_capacity must be >= 0")
        _require_int(self.large_table_warn_threshold, "table.large_table_warn_threshold")
        if self.large_table_warn_threshold < 0:
            raise BadInputError("table.large_table_warn_threshold must be >= 0")


@dataclass
class DemoPolicy:
    students: int = 200

    def validate(self) -> None:
        _require_int(self.students, "demo.students")
        if self.students < 0:
            raise BadInputError("demo.students must be >= 0")


@dataclass
class AppConfig:
    table: TablePolicy = field(default_factory=TablePolicy)
    demo: DemoPolicy = field(default_factory=DemoPolicy)

    @classmethod
    def load(cls, path: Path | None) -> AppConfig:
        if path is None:
            cfg = cls()
        else:
            try:
                data = tomllib.loads(path.read_text(encoding="utf-8"))
            except FileNotFoundError as exc:
                raise BadInputError(f"Config file not found: {path}") from exc
            except tomllib.TOMLDecodeError as exc:
                raise BadInputError(f"Invalid TOML: {exc}") from exc
            cfg = cls.from_dict(data)
        cfg.apply_env_overrides(os.environ)
        cfg.validate()
        return cfg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        table_data = data.get("table", {})
        if not isinstance(table_data, dict):
            raise BadInputError("[table] section must be a table")
        demo_data = data.get("demo", {})
        if not isinstance(demo_data, dict):
            raise BadInputError("[demo] section must be a table")
        try:
            table = TablePolicy(**table_data)
            demo = DemoPolicy(**demo_data)
        except TypeError as exc:
            raise BadInputError(f"Unknown config key: {exc}") from exc
        return cls(table=table, demo=demo)

    def apply_env_overrides(self, env: Mapping[str, str]) -> None:
        mapping: dict[str, tuple[object, str, Callable[[str], Any]]] = {
            "CHAINHASH_INITIAL_CAPACITY": (self.table, "initial_capacity", int),
            "CHAINHASH_LARGE_WARN_THRESHOLD": (self.table, "large_table_warn_threshold", int),
            "CHAINHASH_DEMO_STUDENTS": (self.demo, "students", int),
        }
        for key, (target, attr, caster) in mapping.items():
            raw_value = env.get(key)
            if raw_value is None:
                continue
            try:
                value = caster(raw_value)
            except ValueError as exc:
                raise BadInputError(f"Invalid env override {key}={raw_value!r}") from exc
            setattr(target, attr, value)

    def validate(self) -> None:
        self.table.validate()
        self.demo.validate()


DEFAULT_CONFIG = AppConfig()


def load_app_config(path: str | None) -> AppConfig:
    config_path = Path(path) if path else None
    return AppConfig.load(config_path)
