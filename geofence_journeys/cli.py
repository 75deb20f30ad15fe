"""Command-line interface for geofence_journeys.

Run:
    python -m geofence_journeys counts --input rows.json
    python -m geofence_journeys list --input rows.txt --from-facility F1
    python -m geofence_journeys counts --sql "SELECT ... FROM device_geofencings ..."
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from geofence_journeys.config.database import create_readonly_engine
from geofence_journeys.config.settings import Settings, get_settings
from geofence_journeys.core.journey_calculator import calculate_journey_counts, calculate_journey_list
from geofence_journeys.helpers.validators import validate_extra_hours, validate_facility_id
from geofence_journeys.services.journey_service import JourneyService, to_json
from geofence_journeys.utils.logger import LOGGER_NAME, setup_logger
from geofence_journeys.utils.sql_rows import parse_sql_result_to_rows

logger = logging.getLogger(LOGGER_NAME)


def load_rows(path: Path) -> List[Dict[str, Any]]:
    """Read geofencing rows from a JSON list or saved SQL result text."""
    content = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        parsed = json.loads(content)
        if not isinstance(parsed, list):
            raise ValueError(f"{path} must contain a JSON list of rows")
        return parsed
    return parse_sql_result_to_rows(content)


def _run(args: argparse.Namespace, settings: Settings) -> str:
    extra_hours = validate_extra_hours(
        args.extra_hours if args.extra_hours is not None else settings.EXTRA_JOURNEY_TIME_LIMIT
    )
    from_facility = validate_facility_id(getattr(args, "from_facility", None))

    if args.sql:
        service = JourneyService(create_readonly_engine(settings), settings)
        params = {"extraJourneyTimeLimit": extra_hours, "from_facility": from_facility}
        if args.command == "counts":
            return to_json(service.journey_counts(args.sql, params))
        return to_json(service.journey_list(args.sql, params))

    rows = load_rows(args.input)
    logger.info(f"Loaded {len(rows)} geofencing rows from {args.input}")
    if args.command == "counts":
        return to_json(calculate_journey_counts(rows, extra_hours))
    return to_json(calculate_journey_list(rows, extra_hours, from_facility))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="geofence_journeys",
        description="Infer facility-to-facility journeys from geofencing entry/exit events.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    counts = sub.add_parser("counts", help="journey counts per facility pair")
    journeys = sub.add_parser("list", help="itemized journeys with facility details")
    journeys.add_argument("--from-facility", help="only journeys starting at this facility ID")

    for p in (counts, journeys):
        source = p.add_mutually_exclusive_group(required=True)
        source.add_argument("--input", type=Path, help="JSON list of rows or saved SQL result text")
        source.add_argument("--sql", help="SELECT returning geofencing rows (uses configured database)")
        p.add_argument("--extra-hours", type=float, default=None,
                       help="extra hours required for same-facility journeys")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logger(
        level=settings.LOG_LEVEL,
        log_dir=settings.LOG_DIR,
        log_to_console=settings.LOG_TO_CONSOLE,
        log_to_file=settings.LOG_TO_FILE,
        retention_days=settings.LOG_RETENTION_DAYS,
    )

    try:
        output = _run(args, settings)
    except (ValueError, OSError, SQLAlchemyError) as e:
        logger.error(f"Journey calculation failed: {e}")
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
