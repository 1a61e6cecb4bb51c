"""
app.py

Command-line front end for the chained hash table:
- demo: the Student-keyed walkthrough (put/re-put, lookups, membership,
  snapshot views, then a bulk insert that forces growth)
- generate-csv: synthetic put/get/del workloads
- run-csv: replay a workload into a HashTable, verify its invariants and
  report size, capacity, load factor, chain histogram and growth events

Logs go to stderr (optionally JSON, optionally a rotating file); command
results go to stdout, as JSON when --json is given.
"""

from __future__ import annotations

import argparse
import contextlib
import csv
import json
import logging
import os
import random
import sys
import time
from datetime import date
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from chainhash.cli.commands import CLIContext, register_subcommands
from chainhash.config import AppConfig, load_app_config
from chainhash.contracts.error import (
    BadInputError,
    InvariantError,
    IOErrorEnvelope,
    PolicyError,
    guard_cli,
)
from chainhash.core.maps import (
    HashTable,
    RehashSink,
    collect_bucket_heatmap,
    collect_chain_histogram,
    verify_table,
)
from chainhash.students import Student, StudentMap

# --------------------------------------------------------------------
# Logging
# --------------------------------------------------------------------
logger = logging.getLogger("chainhash")
logger.setLevel(logging.INFO)
logger.propagate = False

DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"
DEFAULT_LOG_MAX_BYTES = 5_000_000
DEFAULT_LOG_BACKUP_COUNT = 5
DEFAULT_CSV_MAX_ROWS = 5_000_000

CSV_HINT = "Expected header op,key,value with ops put/get/del"


class JsonFormatter(logging.Formatter):
    """Render log records as JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, DEFAULT_LOG_DATEFMT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(
    use_json: bool = False,
    log_file: str | None = None,
    *,
    max_bytes: int = DEFAULT_LOG_MAX_BYTES,
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT,
) -> None:
    """Configure console (and optional rotating file) logging."""

    formatter: logging.Formatter
    if use_json:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(DEFAULT_LOG_FORMAT, DEFAULT_LOG_DATEFMT)

    for handler in list(logger.handlers):
        with contextlib.suppress(Exception):
            handler.close()
        logger.removeHandler(handler)

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    if log_file:
        handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        handler.setFormatter(formatter)
        logger.addHandler(handler)


configure_logging()

APP_CONFIG: AppConfig = AppConfig()
OUTPUT_JSON: bool = False


def set_app_config(cfg: AppConfig) -> None:
    global APP_CONFIG
    APP_CONFIG = cfg


def emit_success(
    command: str, *, text: str | None = None, data: dict[str, Any] | None = None
) -> None:
    if OUTPUT_JSON:
        payload: dict[str, Any] = {"ok": True, "command": command}
        if data:
            payload.update(data)
        if text is not None and "result" not in payload:
            payload["result"] = text
        print(json.dumps(payload, ensure_ascii=False))
    else:
        if text is not None:
            print(text)


def _new_sink(events: Optional[List[Dict[str, Any]]] = None) -> RehashSink:
    return RehashSink(
        events,
        large_table_warn_threshold=APP_CONFIG.table.large_table_warn_threshold,
        clock=time.perf_counter,
    )


def build_table(*, sink: Optional[RehashSink] = None) -> HashTable[str, str]:
    table: HashTable[str, str] = HashTable(APP_CONFIG.table.initial_capacity)
    (sink or _new_sink()).attach(table)
    return table


# --------------------------------------------------------------------
# Ops runner / generator
# --------------------------------------------------------------------
def run_op(table: HashTable[Any, Any], op: str, key: Optional[str], value: Optional[str]) -> Optional[str]:
    if op == "put":
        if key is None or value is None:
            raise BadInputError("PUT operations require both key and value", hint=CSV_HINT)
        table.put(key, value)
    elif op == "get":
        if key is None:
            raise BadInputError("GET operations require a key", hint=CSV_HINT)
        v = table.get(key)
        return "" if v is None else str(v)
    elif op == "del":
        if key is None:
            raise BadInputError("DEL operations require a key", hint=CSV_HINT)
        found = table.contains_key(key)
        table.remove(key)
        return "1" if found else "0"
    else:
        raise BadInputError(f"unknown op: {op}", hint=CSV_HINT)
    return "OK"


def generate_csv(
    out_path: str,
    ops: int,
    read_ratio: float,
    key_space: int,
    seed: int,
    del_ratio_within_writes: float = 0.2,
) -> None:
    if ops <= 0:
        raise BadInputError("ops must be > 0")
    if not (0.0 <= read_ratio <= 1.0):
        raise BadInputError("read_ratio must be in [0,1]")
    if key_space <= 0:
        raise BadInputError("key_space must be > 0")
    if not (0.0 <= del_ratio_within_writes < 1.0):
        raise BadInputError("del_ratio_within_writes must be in [0,1)")
    rng = random.Random(seed)
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["op", "key", "value"])
        for _ in range(ops):
            key = f"K{rng.randrange(key_space)}"
            if rng.random() < read_ratio:
                w.writerow(["get", key, ""])
            elif rng.random() < del_ratio_within_writes:
                w.writerow(["del", key, ""])
            else:
                w.writerow(["put", key, str(rng.randint(0, 1_000_000))])


def run_csv(
    path: str,
    *,
    json_summary_out: Optional[str] = None,
    csv_max_rows: int = DEFAULT_CSV_MAX_ROWS,
) -> Dict[str, Any]:
    """
    Replay a put/get/del workload into a fresh HashTable, check the table's
    invariants afterwards, and return (optionally write) a JSON-ready summary.
    """
    csv_path = Path(path)
    if not csv_path.is_file():
        raise IOErrorEnvelope(f"CSV not found: {path}")

    events: List[Dict[str, Any]] = []
    sink = _new_sink(events)
    table = build_table(sink=sink)
    counts = {"put": 0, "get": 0, "del": 0}
    rows = 0

    start = time.perf_counter()
    with csv_path.open(newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh)
        fields = reader.fieldnames or []
        if "op" not in fields or "key" not in fields:
            raise BadInputError(f"CSV header missing op/key columns: {fields}", hint=CSV_HINT)
        for line_no, row in enumerate(reader, start=2):
            rows += 1
            if csv_max_rows and rows > csv_max_rows:
                raise BadInputError(
                    f"CSV exceeds row limit {csv_max_rows}",
                    hint="Raise --csv-max-rows or pass 0 to disable the check",
                )
            op = (row.get("op") or "").strip()
            key = row.get("key")
            value = row.get("value") or None
            if op not in counts:
                raise BadInputError(f"Unknown op {op!r} at line {line_no}", hint=CSV_HINT)
            if key is None:
                raise BadInputError(f"Missing key at line {line_no}", hint=CSV_HINT)
            if op == "put" and value is None:
                raise BadInputError(f"Missing value for put at line {line_no}", hint=CSV_HINT)
            run_op(table, op, key, value)
            counts[op] += 1
    elapsed = time.perf_counter() - start

    ok, msgs = verify_table(table)
    if not ok:
        raise InvariantError("; ".join(msgs))

    summary: Dict[str, Any] = {
        "csv": str(csv_path),
        "total_ops": rows,
        "ops": counts,
        "size": len(table),
        "capacity": table.capacity,
        "load_factor": round(table.load_factor(), 6),
        "max_chain_len": table.max_chain_len(),
        "rehashes": sink.rehashes_total,
        "rehash_events": events,
        "chain_histogram": collect_chain_histogram(table),
        "bucket_heatmap": collect_bucket_heatmap(table),
        "elapsed_seconds": elapsed,
    }
    logger.info(
        "Replayed %d ops in %.4fs (size=%d, capacity=%d, rehashes=%d)",
        rows,
        elapsed,
        len(table),
        table.capacity,
        sink.rehashes_total,
    )
    if json_summary_out:
        out_path = Path(json_summary_out)
        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            out_path.write_text(json.dumps(summary, indent=2), encoding="utf-8")
        except OSError as exc:
            raise IOErrorEnvelope(str(exc)) from exc
        logger.info("Wrote JSON summary: %s", out_path)
    return summary


# --------------------------------------------------------------------
# Demo
# --------------------------------------------------------------------
def run_demo(students: Optional[int] = None) -> Dict[str, Any]:
    """Walk a StudentMap through puts, lookups, views and a bulk insert."""

    bulk = APP_CONFIG.demo.students if students is None else students
    born = date(2021, 1, 1)
    s1 = Student("name1", born, "na")
    s2 = Student("name2", born, "na")
    s3 = Student("name3", born, "na")

    sink = _new_sink()
    table = StudentMap(APP_CONFIG.table.initial_capacity)
    sink.attach(table)
    table.put(s1, 1)
    table.put(s2, 2)
    table.put(s3, 3)
    replaced = table.put(s3, 4)

    trio = (s1, s2, s3)
    result: Dict[str, Any] = {
        "s1_equals_s2": s1 == s2,
        "replaced": replaced,
        "lookups": {s.name: table.get(s) for s in trio},
        "contains_key": {s.name: table.contains_key(s) for s in trio},
        "contains_value": {str(v): table.contains_value(v) for v in (1, 2, 4, 3)},
        "keys": sorted(s.name for s in table.key_set()),
        "values": sorted(table.values()),
        "entries": sorted([s.name, v] for s, v in table.entry_set()),
    }

    today = date.today()
    for i in range(bulk):
        table.put(Student(str(i), today, ""), i)
    result.update(
        {
            "bulk_inserted": bulk,
            "size": len(table),
            "capacity": table.capacity,
            "rehashes": sink.rehashes_total,
        }
    )
    logger.info("Demo finished (size=%d, capacity=%d)", len(table), table.capacity)
    return result


def format_demo(result: Dict[str, Any]) -> str:
    lines = [
        f"s1 == s2: {result['s1_equals_s2']}",
        f"re-put name3 replaced: {result['replaced']}",
    ]
    lines += [f"get({name}) = {value}" for name, value in result["lookups"].items()]
    lines += [f"containsKey({name}) = {hit}" for name, hit in result["contains_key"].items()]
    lines += [f"containsValue({value}) = {hit}" for value, hit in result["contains_value"].items()]
    lines.append("entries: " + ", ".join(f"{name}={value}" for name, value in result["entries"]))
    lines.append("keys: " + ", ".join(result["keys"]))
    lines.append("values: " + ", ".join(str(v) for v in result["values"]))
    lines.append(
        f"after {result['bulk_inserted']} more puts: size={result['size']} "
        f"capacity={result['capacity']} rehashes={result['rehashes']}"
    )
    return "\n".join(lines)


# --------------------------------------------------------------------
# CLI
# --------------------------------------------------------------------
def main(argv: List[str]) -> int:
    p = argparse.ArgumentParser(
        description="Chained hash table toolkit: demo walkthrough, workload generator and replay."
    )
    p.add_argument("--log-json", action="store_true", help="Emit logs in JSON format")
    p.add_argument("--log-file", default=None,
                   help="Optional log file path (rotates at 5MB, keeps 5 backups by default)")
    p.add_argument("--log-max-bytes", type=int, default=DEFAULT_LOG_MAX_BYTES,
                   help="Max bytes per log file before rotation (default: %(default)s)")
    p.add_argument("--log-backup-count", type=int, default=DEFAULT_LOG_BACKUP_COUNT,
                   help="Number of rotated log files to keep (default: %(default)s)")
    p.add_argument("--json", action="store_true",
                   help="Emit machine-readable success output to stdout")
    p.add_argument("--config", default=None,
                   help="Path to TOML config file (env: CHAINHASH_CONFIG)")
    sub = p.add_subparsers(dest="cmd", required=True)

    ctx = CLIContext(
        emit_success=emit_success,
        run_demo=run_demo,
        format_demo=format_demo,
        generate_csv=generate_csv,
        run_csv=run_csv,
        logger=logger,
        json_enabled=lambda: OUTPUT_JSON,
        guard=guard_cli,
        default_csv_max_rows=DEFAULT_CSV_MAX_ROWS,
    )

    handlers = register_subcommands(sub, ctx)

    args = p.parse_args(argv)

    global OUTPUT_JSON
    OUTPUT_JSON = bool(args.json)

    configure_logging(
        args.log_json,
        args.log_file,
        max_bytes=args.log_max_bytes,
        backup_count=args.log_backup_count,
    )

    cfg_path = args.config or os.getenv("CHAINHASH_CONFIG")
    cfg = guard_cli(load_app_config)(cfg_path)
    set_app_config(cfg)
    if cfg_path:
        logger.info("Loaded config from %s", cfg_path)

    handler = handlers.get(args.cmd)
    if handler is None:
        raise PolicyError(f"Unknown command {args.cmd}")
    return handler(args)


def console_main() -> None:
    """Entry point for console_scripts."""

    try:
        raise SystemExit(main(sys.argv[1:]))
    except SystemExit:
        raise
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        raise SystemExit(2) from e


if __name__ == "__main__":
    console_main()
