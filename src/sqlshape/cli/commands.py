from __future__ import annotations
import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from dotenv import load_dotenv

from sqlshape.config import ParserConfig, load_config
from sqlshape.jsonb import build_json_types
from sqlshape.sql_schema import SchemaModel, parse_sql_files

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def run(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    # Load environment variables first so SQLSHAPE_CONFIG can come from .env
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="sqlshape",
        description="sqlshape - Recover a schema model and JSON column types from SQL DDL"
    )
    parser.add_argument("--config", help="Path to YAML config (default: $SQLSHAPE_CONFIG or sqlshape.yaml)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="cmd", required=True)

    parse = sub.add_parser("parse", help="Parse SQL files and print the schema model as JSON")
    parse.add_argument("files", nargs="+", help="SQL files, parsed in the given order")
    parse.add_argument("--schema", help="Default schema for unqualified names")
    parse.add_argument("--no-comments", action="store_true",
                       help="Do not attach COMMENT ON text")

    types = sub.add_parser("json-types", help="Infer types of JSON column defaults")
    types.add_argument("files", nargs="+", help="SQL files, parsed in the given order")
    types.add_argument("--schema", help="Default schema for unqualified names")
    types.add_argument("--extract-nested", action="store_true",
                       help="Emit nested objects as separately named types")
    types.add_argument("--no-dedupe", action="store_true",
                       help="Keep structurally identical types")

    args = parser.parse_args(argv)

    try:
        config = _apply_overrides(load_config(args.config), args)

        logging.basicConfig(
            level=logging.DEBUG if args.verbose else getattr(logging, config.log_level),
            format=LOG_FORMAT,
            handlers=[
                logging.StreamHandler(sys.stderr)
            ]
        )

        if args.cmd == "parse":
            exit_code = parse_cmd(args.files, config)
        elif args.cmd == "json-types":
            exit_code = json_types_cmd(args.files, config)
        else:
            exit_code = 2
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


def _apply_overrides(config: ParserConfig, args: argparse.Namespace) -> ParserConfig:
    """Layer command-line flags over the loaded configuration."""
    overrides = {}
    if getattr(args, "schema", None):
        overrides["default_schema"] = args.schema
    if getattr(args, "no_comments", False):
        overrides["include_comments"] = False
    if getattr(args, "extract_nested", False):
        overrides["extract_nested_types"] = True
    if getattr(args, "no_dedupe", False):
        overrides["deduplicate_types"] = False
    if not overrides:
        return config
    return ParserConfig.model_validate({**config.model_dump(), **overrides})


def _load_schema(files: list[str], config: ParserConfig) -> SchemaModel:
    contents = []
    for path in files:
        logger.info(f"Reading {path}")
        contents.append(Path(path).read_text(encoding="utf-8"))
    return parse_sql_files(contents, config.to_context(), names=files)


def parse_cmd(files: list[str], config: ParserConfig) -> int:
    """Print the assembled schema model as JSON.

    Returns:
        Exit status: 1 when nothing was recognized in any file
    """
    model = _load_schema(files, config)
    print(json.dumps(asdict(model), indent=2))

    if model.is_empty():
        print("No tables, types, functions or views found", file=sys.stderr)
        return 1
    return 0


def json_types_cmd(files: list[str], config: ParserConfig) -> int:
    """Print the inferred JSON column types as JSON.

    Returns:
        Exit status: 1 when nothing was recognized in any file
    """
    model = _load_schema(files, config)
    result = build_json_types(model, config.to_context(), deduplicate=config.deduplicate_types)

    print(json.dumps({
        "types": [asdict(t) for t in result.types],
        "removed_count": result.removed_count,
        "aliases": result.aliases,
    }, indent=2))

    if model.is_empty():
        print("No tables, types, functions or views found", file=sys.stderr)
        return 1
    return 0
