from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import uuid

import uvicorn

from formdoc.api.handlers.deps import ApiDeps
from formdoc.api.handlers.submissions import to_run_response
from formdoc.api.http_app import build_app
from formdoc.clients.sheet import SheetTabularSource
from formdoc.config import config_path_from_env, load_config
from formdoc.domain.dto import ReplayRowCommand
from formdoc.domain.errors import ConfigurationError, DomainError, InvalidSelectionError
from formdoc.domain.use_cases.replay import replay_row
from formdoc.logging_setup import configure_logging
from formdoc.roles import SUPPORTED_ROLES, validate_role
from formdoc.services.bootstrap import build_runtime_container


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Form submission document publisher")
    parser.add_argument("--role", required=True, help="Runtime role")
    parser.add_argument("--config", default=str(config_path_from_env()), help="Publisher YAML config")
    parser.add_argument("--host", default=os.getenv("APP_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument(
        "--dry-run-startup",
        action="store_true",
        help="Validate role and configuration, then exit",
    )
    parser.add_argument("--sheet", default=None, help="CSV/XLSX export of the response sheet (replay role)")
    parser.add_argument("--sheet-name", default=0, help="Worksheet name for Excel files (replay role)")
    parser.add_argument("--row", type=int, default=None, help="1-based sheet row to replay (replay role)")
    return parser.parse_args(argv)


def create_runtime_app() -> object:
    configure_logging()
    config = load_config(file_path=config_path_from_env())
    container = build_runtime_container(config)
    return build_app(
        role="api",
        run_id=str(uuid.uuid4()),
        api_deps=ApiDeps(config=config, pipeline=container.pipeline),
    )


def run(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        role = validate_role(args.role)
    except ValueError as exc:
        supported = ", ".join(SUPPORTED_ROLES)
        sys.stderr.write(f"ERROR: {exc}\n")
        sys.stderr.write(f"Try one of: {supported}\n")
        return 2

    configure_logging()
    run_id = str(uuid.uuid4())
    logger = logging.getLogger("runtime")

    try:
        config = load_config(file_path=args.config)
    except ConfigurationError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 2

    logger.info(
        "runtime initialized",
        extra={"role": role.name, "service": role.name, "run_id": run_id},
    )

    if args.dry_run_startup:
        logger.info(
            "dry-run startup complete",
            extra={"role": role.name, "service": role.name, "run_id": run_id},
        )
        return 0

    container = build_runtime_container(config)
    if role.name == "replay":
        return _run_replay(args, pipeline=container.pipeline)

    app = build_app(
        role=role.name,
        run_id=run_id,
        api_deps=ApiDeps(config=config, pipeline=container.pipeline),
    )
    uvicorn.run(app, host=args.host, port=args.port, log_level="warning")
    return 0


def _run_replay(args: argparse.Namespace, *, pipeline) -> int:
    if args.sheet is None:
        sys.stderr.write("ERROR: --sheet is required for the replay role\n")
        return 2

    try:
        source = SheetTabularSource(path=args.sheet, sheet_name=args.sheet_name)
        pipeline_run = replay_row(ReplayRowCommand(row_number=args.row), source=source, pipeline=pipeline)
    except (ConfigurationError, InvalidSelectionError) as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 2
    except DomainError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 1

    sys.stdout.write(json.dumps(to_run_response(pipeline_run).model_dump()) + "\n")
    return 0


def cli() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    cli()
