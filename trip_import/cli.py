"""Command line entry point for the trip trace import.

Creates the schema, registers trips and steps, and runs the import for one
trip using thresholds and the database URL from the YAML config.
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from trip_import.catalog import add_trip_step, create_trip
from trip_import.config import config_from_mapping, get_nested, load_config, set_active_config
from trip_import.database import init_db, make_engine, make_session_factory
from trip_import.errors import TripImportError
from trip_import.pipeline import import_trace


def configure_logging(log_cfg: Dict[str, object]) -> None:
    """Configure the root logger with a console handler and an optional file handler."""

    level_name = str(log_cfg.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s - %(levelname)s - %(message)s"
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(fmt))
    root.addHandler(stream_handler)

    if log_cfg.get("dir"):
        log_dir = Path(str(log_cfg["dir"]))
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / str(log_cfg.get("filename", "trip_import.log"))
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(fmt))
        root.addHandler(file_handler)
        root.info("Logging to %s (level=%s)", log_path, level_name)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Clean, classify and load GNSS trip traces.")
    parser.add_argument("--config", default="config/trip_import.yaml", help="YAML config path")
    parser.add_argument("--database-url", default=None, help="Override database.url from the config")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create tables and seed travel modes")

    trip = sub.add_parser("add-trip", help="Register a trip")
    trip.add_argument("--name", required=True)
    trip.add_argument("--start", required=True, type=datetime.fromisoformat)
    trip.add_argument("--end", required=True, type=datetime.fromisoformat)
    trip.add_argument("--desc", default=None)

    step = sub.add_parser("add-step", help="Register a step of a trip")
    step.add_argument("--trip-id", required=True, type=int)
    step.add_argument("--leg", required=True)
    step.add_argument("--step", required=True)
    step.add_argument("--start", required=True, type=datetime.fromisoformat)
    step.add_argument("--end", required=True, type=datetime.fromisoformat)
    step.add_argument("--mode", required=True, help="Travel mode, e.g. foot or motor")

    run = sub.add_parser("import", help="Import the staged trace of one trip")
    run.add_argument("--trip-id", required=True, type=int)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    cfg = load_config(args.config) if Path(args.config).exists() else {}
    configure_logging(cfg.get("logging", {}) or {})
    import_config = config_from_mapping(cfg)
    set_active_config(import_config)

    url = args.database_url or get_nested(cfg, ["database", "url"], "sqlite:///trip_import.db")
    engine = make_engine(url, echo=bool(get_nested(cfg, ["database", "echo"], False)))

    if args.command == "init-db":
        modes = init_db(engine)
        logging.info("Schema ready; travel modes: %s", sorted(modes))
        return 0

    factory = make_session_factory(engine)
    try:
        if args.command == "import":
            with factory() as session:
                summary = import_trace(session, args.trip_id, import_config)
            print(json.dumps(summary.as_dict(), indent=2))
            return 0

        with factory() as session, session.begin():
            if args.command == "add-trip":
                created = create_trip(session, args.name, args.start, args.end, args.desc)
                print(created.trip_id)
            else:
                created_step = add_trip_step(
                    session, args.trip_id, args.leg, args.step, args.start, args.end, args.mode
                )
                print(created_step.trip_step_id)
        return 0
    except TripImportError as exc:
        logging.error("%s failed: %s", args.command, exc)
        return 1
