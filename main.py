"""CLI entrypoint for coverage analysis and question pre-generation."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

from config import Settings, get_settings
from core import Language, QuestionType
from planning import PlanFilters, save_report
from pipeline import (
    EXECUTORS,
    build_analysis,
    build_runtime,
    install_signal_handlers,
    print_gap_report,
    print_run_summary,
)
from utils.clock import CancellationToken
from utils.exceptions import ConfigurationError
from utils.logger import setup_logger


logger = logging.getLogger("pregen")

EXIT_CONFIG_ERROR = 2


def _add_filters(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--skill-node", default=None)
    parser.add_argument("--difficulty", type=int, choices=range(1, 6), default=None)
    parser.add_argument("--qtype", choices=[t.value for t in QuestionType], default=None)
    parser.add_argument("--language", choices=[lang.value for lang in Language], default=None)


def _filters(args: argparse.Namespace) -> PlanFilters:
    return PlanFilters(
        skill_node=args.skill_node,
        difficulty=args.difficulty,
        question_type=QuestionType(args.qtype) if args.qtype else None,
        language=Language(args.language) if args.language else None,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pregen", description="Question pool coverage and pre-generation")
    parser.add_argument("--env-file", default=None, help="Load settings from this .env file")
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    gaps = sub.add_parser("gaps", help="Analyze coverage gaps")
    gaps.add_argument("--output", default=None, help="Save the report as JSON")
    gaps.add_argument("--top", type=int, default=20)
    gaps.add_argument("--json", action="store_true", help="Print a JSON summary instead of tables")

    fill = sub.add_parser("fill", help="Run one planned generation round")
    _add_filters(fill)
    fill.add_argument("--count", type=int, default=None, help="Max items per bucket")
    fill.add_argument("--dry-run", action="store_true")
    fill.add_argument("--executor", choices=EXECUTORS, default="direct")
    fill.add_argument("--calibrate", action="store_true", help="Score difficulty of each new item")

    run = sub.add_parser("run", help="Fill gaps repeatedly until the time budget runs out")
    _add_filters(run)
    run.add_argument("--minutes", type=float, default=None)
    run.add_argument("--seed", type=int, default=None)
    run.add_argument("--count", type=int, default=None, help="Max items per bucket per round")
    run.add_argument("--dry-run", action="store_true")
    run.add_argument("--executor", choices=EXECUTORS, default="direct")
    run.add_argument("--calibrate", action="store_true")

    return parser


def _cmd_gaps(args: argparse.Namespace, settings: Settings) -> int:
    runtime = build_analysis(settings)
    try:
        report = runtime.analyzer.analyze()
    finally:
        runtime.store.close()

    if args.output:
        path = save_report(report, args.output)
        logger.info(f"Saved gap report to {path}")

    if args.json:
        print(
            json.dumps(
                {
                    "total_buckets": report.total_buckets,
                    "covered_buckets": report.covered_buckets,
                    "questions_needed": report.questions_needed,
                    "by_unit": report.by_unit,
                    "by_difficulty": report.by_difficulty,
                    "by_question_type": report.by_question_type,
                },
                ensure_ascii=False,
            )
        )
    else:
        print_gap_report(report, top=args.top)
    return 0


async def _cmd_fill(args: argparse.Namespace, settings: Settings) -> int:
    runtime = build_runtime(
        settings,
        executor=args.executor,
        dry_run=args.dry_run,
        calibrate=args.calibrate,
        per_run_cap=args.count,
    )
    token = CancellationToken.unbounded(runtime.clock)
    remove_handlers = install_signal_handlers(token)
    try:
        summary = await runtime.scheduler.run_once(_filters(args), token)
    finally:
        remove_handlers()
        await runtime.aclose()
    print_run_summary(summary)
    return 0


async def _cmd_run(args: argparse.Namespace, settings: Settings) -> int:
    runtime = build_runtime(
        settings,
        executor=args.executor,
        dry_run=args.dry_run,
        calibrate=args.calibrate,
        per_run_cap=args.count,
        seed=args.seed,
    )
    minutes = args.minutes if args.minutes is not None else settings.pregen.runtime_minutes
    token = CancellationToken(runtime.clock, deadline_s=minutes * 60.0)
    remove_handlers = install_signal_handlers(token)
    logger.info(f"Running for up to {minutes:g} minutes (executor={args.executor}, dry_run={args.dry_run})")
    try:
        summary = await runtime.scheduler.run(token, _filters(args))
    finally:
        remove_handlers()
        await runtime.aclose()
    print_run_summary(summary)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logger(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        settings = Settings.load_from_env_file(Path(args.env_file)) if args.env_file else get_settings()
        if args.command == "gaps":
            return _cmd_gaps(args, settings)
        if args.command == "fill":
            return asyncio.run(_cmd_fill(args, settings))
        return asyncio.run(_cmd_run(args, settings))
    except ConfigurationError as exc:
        logger.error(f"Configuration error: {exc}")
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
