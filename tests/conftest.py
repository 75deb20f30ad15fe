import pytest
from sqlalchemy import create_engine, text

from geofence_journeys.config.settings import Settings, get_settings

T0 = 1_700_000_000.0
HOUR = 3600


def make_row(device_id, facility_id, entry, exit=None, facility_type=None, facility_name=None):
    return {
        "device_id": device_id,
        "facility_id": facility_id,
        "facility_type": facility_type,
        "facility_name": facility_name,
        "entry_event_time": entry,
        "exit_event_time": exit,
    }


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def mixed_rows():
    """Two devices, several facilities, some invalid rows."""
    return [
        make_row("D1", "A", T0 - HOUR, T0, "M", "Plant A"),
        make_row("D1", "B", T0 + 5 * HOUR, T0 + 6 * HOUR, "R", "Retailer B"),
        make_row("D1", "C", T0 + 11 * HOUR, T0 + 12 * HOUR, "R", "Retailer C"),
        make_row("D1", "A", T0 + 20 * HOUR, None, "M", "Plant A"),
        make_row("D2", "B", T0, T0 + HOUR, "R", "Retailer B"),
        make_row("D2", "A", T0 + 3 * HOUR, T0 + 4 * HOUR, "M", "Plant A"),
        make_row("D2", "B", T0 + 10 * HOUR, T0 + 11 * HOUR, "R", "Retailer B"),
        make_row("", "Z", T0, T0 + HOUR, "X", "Ghost"),
        make_row("D3", "Y", "not-a-date", T0, "X", "Broken"),
    ]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'geofencing.db'}",
        LOG_TO_FILE=False,
        MAX_GEOFENCING_ROWS=100,
    )


@pytest.fixture
def engine(settings):
    engine = create_engine(settings.DATABASE_URL)
    with engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE device_geofencings ("
            " device_id TEXT, facility_id TEXT, facility_type TEXT,"
            " entry_event_time REAL, exit_event_time REAL)"
        ))
        conn.execute(
            text(
                "INSERT INTO device_geofencings VALUES"
                " (:device_id, :facility_id, :facility_type, :entry_event_time, :exit_event_time)"
            ),
            [
                {"device_id": "D1", "facility_id": "A", "facility_type": "M",
                 "entry_event_time": T0 - HOUR, "exit_event_time": T0},
                {"device_id": "D1", "facility_id": "B", "facility_type": "R",
                 "entry_event_time": T0 + 5 * HOUR, "exit_event_time": T0 + 6 * HOUR},
                {"device_id": "D1", "facility_id": "A", "facility_type": "M",
                 "entry_event_time": T0 + 11 * HOUR, "exit_event_time": None},
            ],
        )
    yield engine
    engine.dispose()
