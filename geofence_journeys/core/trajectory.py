"""
Trajectory Builder

Turns raw geofencing rows into per-device trajectories: a chronologically
ordered list of facility visits for every device.

Rows are skipped (never fatal) when:
- device_id is missing or empty
- facility_id is missing or empty
- entry_event_time cannot be converted to a Unix timestamp (warning logged)

Visits with equal entry times keep their input order (list.sort is stable).
Nothing else is guaranteed about ties; upstream SQL should ORDER BY if it
matters.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional
import logging

from geofence_journeys.core.timestamps import normalize_timestamp

logger = logging.getLogger("geofence_journeys")


@dataclass(frozen=True)
class Visit:
    """One stay of a device at a facility."""

    facility_id: str
    facility_type: str
    entry_time: float
    exit_time: Optional[float]


def row_value(row: Any, field: str) -> Any:
    """Read a field from a dict-like row or an object with attributes."""
    if isinstance(row, Mapping):
        return row.get(field)
    return getattr(row, field, None)


def row_text(row: Any, field: str) -> str:
    """Read a field as a string, with None mapped to ''."""
    value = row_value(row, field)
    if value is None:
        return ""
    return str(value)


def require_rows(geofencing_rows: Any) -> None:
    if geofencing_rows is None:
        raise TypeError("geofencing_rows must be a collection of rows, got None")


def build_trajectories(geofencing_rows: Iterable[Any]) -> Dict[str, List[Visit]]:
    """
    Group rows by device and sort each device's visits by entry time.

    Args:
        geofencing_rows: Rows with device_id, facility_id, facility_type,
            entry_event_time and exit_event_time

    Returns:
        Dict mapping device_id to its visits in ascending entry time.
        Devices whose rows were all skipped are absent.
    """
    require_rows(geofencing_rows)

    trajectories: Dict[str, List[Visit]] = {}
    for row in geofencing_rows:
        device_id = row_text(row, "device_id")
        facility_id = row_text(row, "facility_id")
        if not device_id or not facility_id:
            continue

        raw_entry = row_value(row, "entry_event_time")
        entry_time = normalize_timestamp(raw_entry)
        if entry_time is None:
            logger.warning(
                f"Invalid entry_time for device {device_id}: {raw_entry!r} (type: {type(raw_entry).__name__})"
            )
            continue

        raw_exit = row_value(row, "exit_event_time")
        exit_time = normalize_timestamp(raw_exit)
        if exit_time is None and raw_exit not in (None, ""):
            logger.warning(
                f"Invalid exit_time for device {device_id}: {raw_exit!r} (type: {type(raw_exit).__name__})"
            )

        trajectories.setdefault(device_id, []).append(Visit(
            facility_id=facility_id,
            facility_type=row_text(row, "facility_type").strip(),
            entry_time=entry_time,
            exit_time=exit_time,
        ))

    for visits in trajectories.values():
        visits.sort(key=lambda visit: visit.entry_time)

    return trajectories


def collect_facility_details(geofencing_rows: Iterable[Any]) -> Dict[str, Dict[str, Any]]:
    """
    First-seen facility_type/facility_name per facility, in input order.

    Rows that build_trajectories would skip do not contribute, so a
    rejected row leaves no trace in the result.
    build_facility_type_map reads every row instead, so a facility seen
    only on rejected rows has a type there but no entry here.
    """
    require_rows(geofencing_rows)

    facilities_details: Dict[str, Dict[str, Any]] = {}
    for row in geofencing_rows:
        if not row_text(row, "device_id"):
            continue
        if normalize_timestamp(row_value(row, "entry_event_time")) is None:
            continue
        facility_id = row_text(row, "facility_id")
        if facility_id and facility_id not in facilities_details:
            facility_type = row_value(row, "facility_type")
            facility_name = row_value(row, "facility_name")
            facilities_details[facility_id] = {
                "facility_id": facility_id,
                "facility_type": None if facility_type is None else str(facility_type),
                "facility_name": None if facility_name is None else str(facility_name),
            }
    return facilities_details


def build_facility_type_map(geofencing_rows: Iterable[Any]) -> Dict[str, str]:
    """First non-empty facility_type per facility across all rows."""
    require_rows(geofencing_rows)

    facility_type_map: Dict[str, str] = {}
    for row in geofencing_rows:
        fid = row_text(row, "facility_id")
        ftype = row_text(row, "facility_type").strip()
        if fid and ftype and fid not in facility_type_map:
            facility_type_map[fid] = ftype
    return facility_type_map
