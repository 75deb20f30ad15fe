"""
Journey Calculator Module

Journey calculation happens in Python, NOT in SQL. SQL only fetches the raw
device_geofencings rows; this module turns them into journeys.

Journey Definition:
- A journey occurs when a device moves from one facility to another
- Journey time must be >= 4 hours (14400 seconds) for different facilities
- For same facility (A -> A), minimum time is 4 hours + extraJourneyTimeLimit (if provided)

When a device arrives at a facility, a journey is checked from EVERY facility
it visited before (using the most recent visit to each), not only from the
immediately preceding stop. A single arrival can therefore produce several
journeys. Changing this to previous-stop-only changes results.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional
import logging

from geofence_journeys.core.trajectory import (
    Visit,
    build_facility_type_map,
    build_trajectories,
    collect_facility_details,
    require_rows,
)
from geofence_journeys.helpers.validators import validate_facility_id
from geofence_journeys.models.schemas import (
    FacilityDetail,
    JourneyCountMetadata,
    JourneyCountResult,
    JourneyDetail,
    JourneyListResult,
    JourneyRecord,
)

logger = logging.getLogger("geofence_journeys")

# Minimum time limit: 4 hours
MIN_JOURNEY_SECONDS = 14400
JOURNEY_KEY_SEPARATOR = "||"


@dataclass(frozen=True)
class JourneyEdge:
    """A valid journey of one device between two facility visits."""

    device_id: str
    from_facility: str
    to_facility: str
    source_index: int
    departure_time: float
    arrival_time: float

    @property
    def journey_time(self) -> float:
        return self.arrival_time - self.departure_time

    @property
    def key(self) -> str:
        return f"{self.from_facility}{JOURNEY_KEY_SEPARATOR}{self.to_facility}"


def valid_journey_time(
    from_time: Optional[float],
    to_time: Optional[float],
    is_same: bool = False,
    extra_hours: Optional[float] = None
) -> bool:
    """
    Validate if the time between two events constitutes a valid journey.

    Args:
        from_time: Exit time from previous facility (Unix timestamp)
        to_time: Entry time to current facility (Unix timestamp)
        is_same: Whether the journey is from same facility to same facility (A -> A)
        extra_hours: Extra hours added to the minimum for same-facility journeys

    Returns:
        True if the time difference is valid for a journey, False otherwise
    """
    if from_time is None or to_time is None:
        return False

    min_limit = MIN_JOURNEY_SECONDS
    if is_same and extra_hours:
        min_limit += extra_hours * 3600

    return to_time - from_time >= min_limit


def iter_journey_edges(
    device_id: str,
    visits: Iterable[Visit],
    extra_same_facility_hours: Optional[float] = None,
    from_facility: Optional[str] = None
) -> Iterator[JourneyEdge]:
    """
    Walk one device's chronologically sorted visits and yield valid journeys.

    For each visit, journeys are checked from every facility in
    facility_last_index BEFORE the visit registers itself, so a revisit can
    produce a same-facility journey from the earlier stay.

    Args:
        device_id: Device the visits belong to
        visits: Visits sorted by entry time
        extra_same_facility_hours: Extra hours for same-facility journeys
        from_facility: If set, only journeys starting at this facility are checked

    Yields:
        JourneyEdge for every (previous facility -> current facility) pair
        that passes valid_journey_time
    """
    from_facility_str = validate_facility_id(from_facility)
    accumulated: List[Visit] = []
    facility_last_index: Dict[str, int] = {}

    for visit in visits:
        current_index = len(accumulated)
        accumulated.append(visit)

        if current_index > 0:
            for prev_facility_id, last_idx in facility_last_index.items():
                if from_facility_str and prev_facility_id.strip() != from_facility_str:
                    continue

                from_time = accumulated[last_idx].exit_time
                to_time = visit.entry_time
                is_same = prev_facility_id == visit.facility_id

                if valid_journey_time(from_time, to_time, is_same, extra_same_facility_hours):
                    yield JourneyEdge(
                        device_id=device_id,
                        from_facility=prev_facility_id,
                        to_facility=visit.facility_id,
                        source_index=last_idx,
                        departure_time=from_time,
                        arrival_time=to_time,
                    )

        facility_last_index[visit.facility_id] = current_index


def calculate_journey_counts(
    geofencing_rows: Iterable[Any],
    extra_journey_time_limit: Optional[float] = None
) -> JourneyCountResult:
    """
    Calculate journey counts from geofencing rows.

    Algorithm:
    1. Group rows by device_id, sorted by entry_event_time
    2. For each device, generate journeys with iter_journey_edges
    3. Count journeys by facility pair (facilityA||facilityB)

    Args:
        geofencing_rows: Rows (dicts or objects) with device_id, facility_id,
            facility_type, entry_event_time, exit_event_time
        extra_journey_time_limit: Extra hours for same-facility journey validation

    Returns:
        JourneyCountResult with counts, journey_details, total and metadata
    """
    require_rows(geofencing_rows)
    rows = list(geofencing_rows)
    if not rows:
        return JourneyCountResult()

    trajectories = build_trajectories(rows)

    journey_counts: Dict[str, int] = {}
    facility_types_found = set()
    facilities_found = set()

    for device_id, visits in trajectories.items():
        for visit in visits:
            if visit.facility_type:
                facility_types_found.add(visit.facility_type)
            facilities_found.add(visit.facility_id)

        for edge in iter_journey_edges(device_id, visits, extra_journey_time_limit):
            journey_counts[edge.key] = journey_counts.get(edge.key, 0) + 1

    facility_type_map = build_facility_type_map(rows)

    journey_details: Dict[str, JourneyDetail] = {}
    for journey_key, count in journey_counts.items():
        parts = journey_key.split(JOURNEY_KEY_SEPARATOR)
        # Facility ids containing the separator cannot be split back reliably
        if len(parts) != 2:
            continue
        from_facility, to_facility = parts
        journey_details[journey_key] = JourneyDetail(
            count=count,
            from_facility=from_facility,
            to_facility=to_facility,
            from_type=facility_type_map.get(from_facility, ""),
            to_type=facility_type_map.get(to_facility, ""),
        )

    total = sum(journey_counts.values())
    logger.debug(
        f"Journey counts: {total} journeys, {len(journey_counts)} facility pairs, "
        f"{len(trajectories)} devices, {len(rows)} rows"
    )

    return JourneyCountResult(
        counts=journey_counts,
        journey_details=journey_details,
        total=total,
        metadata=JourneyCountMetadata(
            total_rows_processed=len(rows),
            devices_processed=len(trajectories),
            facility_types_found=sorted(facility_types_found),
            unique_facilities_found=len(facilities_found),
            facility_type_map=facility_type_map,
        ),
    )


def calculate_journey_list(
    geofencing_rows: Iterable[Any],
    extra_journey_time_limit: Optional[float] = None,
    from_facility: Optional[str] = None
) -> JourneyListResult:
    """
    Calculate journey list with facility details.

    Same journeys as calculate_journey_counts, itemized per device with
    time pairs.

    Args:
        geofencing_rows: Rows (dicts or objects) with device_id, facility_id,
            facility_type, facility_name, entry_event_time, exit_event_time
        extra_journey_time_limit: Extra hours for same-facility journey validation
        from_facility: Only return journeys that START at this facility ID

    Returns:
        JourneyListResult with:
            - facilities_details: every facility in the input (never filtered)
            - journies: journeys with from_facility, to_facility, device_id,
              journey_time, entry_time (arrival) and exit_time (departure)
    """
    require_rows(geofencing_rows)
    rows = list(geofencing_rows)
    if not rows:
        return JourneyListResult()

    facilities_details = collect_facility_details(rows)
    trajectories = build_trajectories(rows)
    from_facility_str = validate_facility_id(from_facility)

    journies: List[JourneyRecord] = []
    for device_id, visits in trajectories.items():
        for edge in iter_journey_edges(device_id, visits, extra_journey_time_limit, from_facility_str):
            journies.append(JourneyRecord(
                from_facility=edge.from_facility,
                to_facility=edge.to_facility,
                device_id=edge.device_id,
                journey_time=edge.journey_time,
                entry_time=edge.arrival_time,
                exit_time=edge.departure_time,
            ))

    # Second pass over the finished list; must agree with the filter above
    if from_facility_str:
        journies = [j for j in journies if j.from_facility.strip() == from_facility_str]
        logger.info(f"Filtered to {len(journies)} journeys starting from facility {from_facility_str}")

    return JourneyListResult(
        facilities_details={
            facility_id: FacilityDetail(**details)
            for facility_id, details in facilities_details.items()
        },
        journies=journies,
    )
