"""CLI command registration and handlers for chainhash."""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from chainhash.contracts.error import Exit, IOErrorEnvelope


@dataclass(frozen=True)
class CLIContext:
    """Runtime hooks supplied by the top-level CLI entrypoint."""

    emit_success: Callable[..., None]
    run_demo: Callable[..., Dict[str, Any]]
    format_demo: Callable[[Dict[str, Any]], str]
    generate_csv: Callable[..., None]
    run_csv: Callable[..., Dict[str, Any]]
    logger: logging.Logger
    json_enabled: Callable[[], bool]
    guard: Callable[[Callable[[argparse.Namespace], int]], Callable[[argparse.Namespace], int]]
    default_csv_max_rows: int


def register_subcommands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    ctx: CLIContext,
) -> Dict[str, Callable[[argparse.Namespace], int]]:
    """Define CLI subcommands and return their handlers."""

    handlers: Dict[str, Callable[[argparse.Namespace], int]] = {}

    def _register(
        name: str,
        help_text: Optional[str],
        configure: Callable[[argparse.ArgumentParser], Callable[[argparse.Namespace], int]],
    ) -> None:
        parser = subparsers.add_parser(name, help=help_text)
        handler = configure(parser)
        handlers[name] = ctx.guard(handler)

    _register(
        "demo",
        "Walk a Student-keyed table through puts, lookups, views and growth.",
        lambda parser: _configure_demo(parser, ctx),
    )
    _register(
        "generate-csv",
        "Generate a synthetic put/get/del workload CSV.",
        lambda parser: _configure_generate(parser, ctx),
    )
    _register(
        "run-csv",
        "Replay a CSV workload into a HashTable and summarise its shape.",
        lambda parser: _configure_run_csv(parser, ctx),
    )

    return handlers


def _configure_demo(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument(
        "--students",
        type=int,
        default=None,
        help="Generated students to insert after the walkthrough (default: config demo.students)",
    )

    def handler(args: argparse.Namespace) -> int:
        result = ctx.run_demo(args.students)
        text = None if ctx.json_enabled() else ctx.format_demo(result)
        ctx.emit_success("demo", text=text, data=result)
        return int(Exit.OK)

    return handler


def _configure_generate(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("--outfile", required=True)
    parser.add_argument("--ops", type=int, default=100000)
    parser.add_argument("--read-ratio", type=float, default=0.8)
    parser.add_argument("--key-space", type=int, default=10000)
    parser.add_argument("--seed", type=int, default=1337)
    parser.add_argument("--del-ratio", type=float, default=0.2)

    def handler(args: argparse.Namespace) -> int:
        try:
            ctx.generate_csv(
                args.outfile,
                args.ops,
                args.read_ratio,
                args.key_space,
                args.seed,
                del_ratio_within_writes=args.del_ratio,
            )
        except OSError as exc:
            raise IOErrorEnvelope(str(exc)) from exc
        ctx.logger.info("Wrote workload CSV: %s", args.outfile)
        ctx.emit_success(
            "generate-csv",
            data={
                "outfile": args.outfile,
                "ops": args.ops,
                "read_ratio": args.read_ratio,
                "key_space": args.key_space,
                "seed": args.seed,
                "del_ratio": args.del_ratio,
            },
        )
        return int(Exit.OK)

    return handler


def _configure_run_csv(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("--csv", required=True)
    parser.add_argument(
        "--json-summary-out",
        default=None,
        help="Write the replay summary as JSON to this path",
    )
    parser.add_argument(
        "--csv-max-rows",
        type=int,
        default=ctx.default_csv_max_rows,
        help="Abort if CSV rows exceed this count (0 disables check)",
    )

    def handler(args: argparse.Namespace) -> int:
        summary = ctx.run_csv(
            args.csv,
            json_summary_out=args.json_summary_out,
            csv_max_rows=args.csv_max_rows,
        )
        text = (
            f"ops={summary['total_ops']} size={summary['size']} "
            f"capacity={summary['capacity']} load_factor={summary['load_factor']:.3f} "
            f"max_chain_len={summary['max_chain_len']} rehashes={summary['rehashes']}"
        )
        ctx.emit_success("run-csv", text=text, data=summary)
        return int(Exit.OK)

    return handler


__all__ = ["CLIContext", "register_subcommands"]
