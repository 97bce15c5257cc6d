"""
Command line entry point.

    python -m fatigue run CONFIG [--no-fail-fast] [--output FILE]
    python -m fatigue serve [--host HOST] [--port PORT]
"""
import argparse
import json
import logging
import sys

from fatigue.config import get_settings
from fatigue.core.errors import EngineError


logger = logging.getLogger("fatigue")


def _run(args: argparse.Namespace) -> int:
    from fatigue.core.engine import run
    from fatigue.io.config_loader import load_config

    settings = get_settings()
    try:
        config = load_config(args.config)
        result = run(
            config,
            fail_fast=args.fail_fast,
            max_workers=args.workers or settings.max_workers,
            name=args.name,
        )
    except EngineError as e:
        logger.error(f"{e.kind} error: {e}")
        print(json.dumps({"status": "failed", "error": e.to_dict()}, indent=2, default=str))
        return 1

    text = json.dumps(result.to_record(), indent=2)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(text)
        logger.info(f"Result written to {args.output}")
    else:
        print(text)
    return 0 if result.status == "completed" else 2


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "fatigue.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fatigue", description="Fatigue damage engine")
    sub = parser.add_subparsers(dest="command", required=True)

    run_parser = sub.add_parser("run", help="Execute a run from a YAML configuration")
    run_parser.add_argument("config", help="Run configuration (YAML)")
    run_parser.add_argument("--name", default=None, help="Run name")
    run_parser.add_argument("--output", "-o", default=None, help="Write the JSON result to FILE")
    run_parser.add_argument("--workers", type=int, default=None, help="Worker threads")
    run_parser.add_argument(
        "--no-fail-fast", dest="fail_fast", action="store_false",
        help="Report failed load cases and aggregate the others",
    )
    run_parser.set_defaults(func=_run, fail_fast=get_settings().fail_fast)

    serve_parser = sub.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.set_defaults(func=_serve)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
