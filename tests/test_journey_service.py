import json

import pytest

from geofence_journeys.services.journey_service import JourneyService, to_json

from conftest import HOUR, T0

GEOFENCING_SQL = (
    "SELECT device_id, facility_id, facility_type, entry_event_time, exit_event_time "
    "FROM device_geofencings ORDER BY entry_event_time ASC"
)


def test_fetch_geofencing_rows(engine, settings):
    service = JourneyService(engine, settings)

    rows = service.fetch_geofencing_rows(GEOFENCING_SQL)

    assert len(rows) == 3
    assert rows[0] == {
        "device_id": "D1",
        "facility_id": "A",
        "facility_type": "M",
        "entry_event_time": T0 - HOUR,
        "exit_event_time": T0,
    }


def test_non_select_sql_is_rejected(engine, settings):
    service = JourneyService(engine, settings)

    with pytest.raises(ValueError, match="Only SELECT"):
        service.fetch_geofencing_rows("DELETE FROM device_geofencings")


def test_row_limit(engine, settings):
    settings.MAX_GEOFENCING_ROWS = 2
    service = JourneyService(engine, settings)

    with pytest.raises(ValueError, match="more than 2"):
        service.fetch_geofencing_rows(GEOFENCING_SQL)


def test_journey_counts(engine, settings):
    service = JourneyService(engine, settings)

    result = service.journey_counts(GEOFENCING_SQL)

    # A -> B (5h), A -> A (11h), B -> A (5h)
    assert result.counts == {"A||B": 1, "A||A": 1, "B||A": 1}
    assert result.metadata.devices_processed == 1


def test_journey_counts_with_extra_hours_param(engine, settings):
    service = JourneyService(engine, settings)

    result = service.journey_counts(GEOFENCING_SQL, {"extraJourneyTimeLimit": "8"})

    assert result.counts == {"A||B": 1, "B||A": 1}


def test_extra_hours_default_from_settings(engine, settings):
    settings.EXTRA_JOURNEY_TIME_LIMIT = 8
    service = JourneyService(engine, settings)

    assert "A||A" not in service.journey_counts(GEOFENCING_SQL).counts
    assert "A||A" in service.journey_counts(GEOFENCING_SQL, {"extraJourneyTimeLimit": 1}).counts


def test_invalid_extra_hours_param(engine, settings):
    service = JourneyService(engine, settings)

    with pytest.raises(ValueError):
        service.journey_counts(GEOFENCING_SQL, {"extraJourneyTimeLimit": "lots"})


def test_journey_list_from_facility(engine, settings):
    service = JourneyService(engine, settings)

    result = service.journey_list(GEOFENCING_SQL, {"from_facility": " B "})

    assert [(j.from_facility, j.to_facility, j.journey_time) for j in result.journies] == [("B", "A", 5 * HOUR)]
    assert set(result.facilities_details) == {"A", "B"}


def test_to_json(engine, settings):
    service = JourneyService(engine, settings)

    data = json.loads(to_json(service.journey_list(GEOFENCING_SQL)))

    assert len(data["journies"]) == 3
    assert data["facilities_details"]["A"] == {"facility_id": "A", "facility_type": "M", "facility_name": None}
    assert json.loads(to_json({"total": 0})) == {"total": 0}
