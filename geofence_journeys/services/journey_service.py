"""
Journey Service

Runs a geofencing SELECT against the database and feeds the rows to the
journey calculator.

The SQL is expected to look like:

    SELECT dg.device_id, dg.facility_id, dg.facility_type, f.facility_name,
           dg.entry_event_time, dg.exit_event_time
    FROM device_geofencings dg
    JOIN user_device_assignment uda ON uda.device = dg.device_id
    LEFT JOIN facilities f ON dg.facility_id = f.facility_id
    WHERE uda.user_id = [user_id]
    ORDER BY dg.entry_event_time ASC
"""

import json
import logging
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.engine import Engine

from geofence_journeys.config.settings import Settings, get_settings
from geofence_journeys.core.journey_calculator import calculate_journey_counts, calculate_journey_list
from geofence_journeys.helpers.validators import is_select_query, validate_extra_hours, validate_facility_id
from geofence_journeys.models.schemas import JourneyCountResult, JourneyListResult
from geofence_journeys.utils.sql_rows import rows_from_mappings

logger = logging.getLogger("geofence_journeys")


class JourneyService:
    """
    Journey calculations backed by a read-only database engine.
    """

    def __init__(self, engine: Engine, settings: Optional[Settings] = None):
        self.engine = engine
        self.settings = settings or get_settings()

    def fetch_geofencing_rows(self, sql: str) -> List[Dict[str, Any]]:
        """
        Execute a SELECT and return its rows as dicts.

        Raises:
            ValueError: If the SQL is not a SELECT or returns more than
                MAX_GEOFENCING_ROWS rows
        """
        if not is_select_query(sql):
            raise ValueError("Only SELECT queries are allowed for journey calculations")

        max_rows = self.settings.MAX_GEOFENCING_ROWS
        with self.engine.connect() as conn:
            result = conn.execute(text(sql))
            fetched = result.fetchmany(max_rows + 1)

        if len(fetched) > max_rows:
            raise ValueError(
                f"Query returned more than {max_rows} geofencing rows. "
                "Narrow it down (date range, device, facility) and try again."
            )

        rows = rows_from_mappings(fetched)
        logger.info(f"Fetched {len(rows)} geofencing rows")
        return rows

    def _extra_hours(self, params: Optional[Dict[str, Any]]) -> Optional[float]:
        value = params.get("extraJourneyTimeLimit") if params else None
        if value is None or value == "":
            value = self.settings.EXTRA_JOURNEY_TIME_LIMIT
        return validate_extra_hours(value)

    def journey_counts(self, sql: str, params: Optional[Dict[str, Any]] = None) -> JourneyCountResult:
        """
        Calculate journey counts by facility pair for the rows returned by sql.

        Args:
            sql: SELECT returning geofencing rows
            params: Optional dict with extraJourneyTimeLimit (hours)
        """
        extra_hours = self._extra_hours(params)
        geofencing_rows = self.fetch_geofencing_rows(sql)

        journey_result = calculate_journey_counts(geofencing_rows, extra_hours)

        metadata = journey_result.metadata
        logger.info(
            f"Calculated {journey_result.total} journeys across {len(journey_result.counts)} facility pairs "
            f"({metadata.total_rows_processed} rows, {metadata.devices_processed} devices, "
            f"facility types: {metadata.facility_types_found})"
        )
        if journey_result.total == 0 and geofencing_rows:
            logger.info(
                f"Found {len(geofencing_rows)} geofencing records but 0 journeys "
                "(same facility only, or journey time < 4 hours)"
            )
        return journey_result

    def journey_list(self, sql: str, params: Optional[Dict[str, Any]] = None) -> JourneyListResult:
        """
        Calculate itemized journeys for the rows returned by sql.

        Args:
            sql: SELECT returning geofencing rows (facility_name optional)
            params: Optional dict with extraJourneyTimeLimit (hours) and
                from_facility (only journeys starting at this facility)
        """
        extra_hours = self._extra_hours(params)
        from_facility = validate_facility_id(params.get("from_facility")) if params else None
        geofencing_rows = self.fetch_geofencing_rows(sql)

        journey_result = calculate_journey_list(geofencing_rows, extra_hours, from_facility)

        filter_note = f" from facility {from_facility}" if from_facility else ""
        logger.info(
            f"Calculated {len(journey_result.journies)} journeys{filter_note}, "
            f"{len(journey_result.facilities_details)} facilities"
        )
        return journey_result


def to_json(result: Union[BaseModel, Dict[str, Any]], indent: Optional[int] = 2) -> str:
    """Serialize a journey result for tool/CLI output."""
    if isinstance(result, BaseModel):
        return result.model_dump_json(indent=indent)
    return json.dumps(result, indent=indent, default=str)
