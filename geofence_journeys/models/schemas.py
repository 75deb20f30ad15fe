"""
Data Models for Journey Calculation

Pydantic models for geofencing input rows and journey results.
Results are frozen; model_dump() gives the JSON shape returned to callers.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict


class GeofencingEvent(BaseModel):
    """
    One row of device_geofencings data.

    Optional typed row shape: the calculator accepts plain mappings too and
    reads either through row_value, so callers are not required to validate
    rows with this model. Timestamps are kept as received; the calculator
    normalizes them.
    """
    model_config = ConfigDict(coerce_numbers_to_str=True)

    device_id: Optional[str] = None
    facility_id: Optional[str] = None
    facility_type: Optional[str] = None
    facility_name: Optional[str] = None
    entry_event_time: Any = None
    exit_event_time: Any = None


class JourneyDetail(BaseModel):
    """
    Count for one facility pair, enriched with facility types.
    """
    model_config = ConfigDict(frozen=True)

    count: int
    from_facility: str
    to_facility: str
    from_type: str = ""
    to_type: str = ""


class JourneyCountMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_rows_processed: int = 0
    devices_processed: int = 0
    facility_types_found: List[str] = []
    unique_facilities_found: int = 0
    facility_type_map: Dict[str, str] = {}


class JourneyCountResult(BaseModel):
    """
    Result of calculate_journey_counts.
    """
    model_config = ConfigDict(frozen=True)

    counts: Dict[str, int] = {}  # "facilityA||facilityB" -> count
    journey_details: Dict[str, JourneyDetail] = {}
    total: int = 0
    metadata: JourneyCountMetadata = JourneyCountMetadata()


class FacilityDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    facility_id: str
    facility_type: Optional[str] = None
    facility_name: Optional[str] = None


class JourneyRecord(BaseModel):
    """
    One itemized journey.

    entry_time is the arrival at to_facility; exit_time is the departure
    from from_facility.
    """
    model_config = ConfigDict(frozen=True)

    from_facility: str
    to_facility: str
    device_id: str
    journey_time: float
    entry_time: float
    exit_time: float


class JourneyListResult(BaseModel):
    """
    Result of calculate_journey_list.
    """
    model_config = ConfigDict(frozen=True)

    facilities_details: Dict[str, FacilityDetail] = {}
    journies: List[JourneyRecord] = []
