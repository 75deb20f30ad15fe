from datetime import datetime, timezone
from decimal import Decimal

import pytest

from geofence_journeys import calculate_journey_counts
from geofence_journeys.utils.sql_rows import parse_sql_result_to_rows, rows_from_mappings

PIPE_RESULT = """device_id | facility_id | facility_type | entry_event_time | exit_event_time
D1 | F1 | M | 2024-01-15 06:00:00 | 2024-01-15 07:00:00
D1 | F2 | R | 2024-01-15 12:00:00 |
"""


def test_pipe_separated_result():
    rows = parse_sql_result_to_rows(PIPE_RESULT)

    assert rows == [
        {
            "device_id": "D1",
            "facility_id": "F1",
            "facility_type": "M",
            "entry_event_time": "2024-01-15 06:00:00",
            "exit_event_time": "2024-01-15 07:00:00",
        },
        {
            "device_id": "D1",
            "facility_id": "F2",
            "facility_type": "R",
            "entry_event_time": "2024-01-15 12:00:00",
            "exit_event_time": None,
        },
    ]


def test_pipe_rows_feed_the_calculator():
    result = calculate_journey_counts(parse_sql_result_to_rows(PIPE_RESULT))

    assert result.counts == {"F1||F2": 1}


def test_bordered_table_with_separator_line():
    text = "| device_id | facility_id |\n|-----------|-------------|\n| 007 | F1 |\n"

    assert parse_sql_result_to_rows(text) == [{"device_id": "007", "facility_id": "F1"}]


def test_lines_with_wrong_cell_count_are_skipped():
    text = "a | b\n1 | 2\n1 | 2 | 3\n\n4 | 5\n"

    assert parse_sql_result_to_rows(text) == [{"a": "1", "b": "2"}, {"a": "4", "b": "5"}]


def test_python_literal_with_datetimes():
    text = (
        "[{'device_id': 'D1', 'facility_id': 'F1', "
        "'entry_event_time': datetime.datetime(2024, 1, 15, 6, 0), "
        "'exit_event_time': datetime.datetime(2024, 1, 15, 7, 0, tzinfo=datetime.timezone.utc), "
        "'weight': Decimal('1.5'), 'offset': -3}]"
    )

    rows = parse_sql_result_to_rows(text)

    assert rows == [{
        "device_id": "D1",
        "facility_id": "F1",
        "entry_event_time": datetime(2024, 1, 15, 6, 0),
        "exit_event_time": datetime(2024, 1, 15, 7, 0, tzinfo=timezone.utc),
        "weight": Decimal("1.5"),
        "offset": -3,
    }]


def test_json_result():
    text = '[{"device_id": "D1", "facility_id": "F1", "exit_event_time": null, "active": true}]'

    assert parse_sql_result_to_rows(text) == [
        {"device_id": "D1", "facility_id": "F1", "exit_event_time": None, "active": True}
    ]


def test_arbitrary_calls_are_not_evaluated():
    assert parse_sql_result_to_rows("[__import__('os').getcwd()]") == []


@pytest.mark.parametrize("text", ["", "   ", "device_id | facility_id"])
def test_empty_results(text):
    assert parse_sql_result_to_rows(text) == []


def test_rows_from_mappings():
    class FakeRow:
        def __init__(self, mapping):
            self._mapping = mapping

    rows = rows_from_mappings([{"device_id": "D1"}, FakeRow({"device_id": "D2"})])

    assert rows == [{"device_id": "D1"}, {"device_id": "D2"}]


def test_rows_from_mappings_rejects_tuples():
    with pytest.raises(TypeError):
        rows_from_mappings([("D1", "F1")])


def test_decimal_epochs_feed_the_calculator():
    text = (
        "[{'device_id': 'D1', 'facility_id': 'A', "
        "'entry_event_time': Decimal('1699996400'), 'exit_event_time': Decimal('1700000000')}, "
        "{'device_id': 'D1', 'facility_id': 'B', "
        "'entry_event_time': Decimal('1700018000'), 'exit_event_time': None}]"
    )

    result = calculate_journey_counts(parse_sql_result_to_rows(text))

    assert result.counts == {"A||B": 1}
    assert result.total == 1
