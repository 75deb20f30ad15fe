"""
SQL Result Parsing

Turns query output into geofencing row dicts for the journey calculator.

Text output (e.g. from an LLM SQL tool) comes in one of three shapes, tried in order:
1. Python literal list of dicts, possibly containing datetime.datetime(...) reprs
2. JSON list of objects
3. Pipe-separated table, first line is headers

Native SQLAlchemy rows are converted with rows_from_mappings().
"""

import ast
import json
import logging
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List

logger = logging.getLogger("geofence_journeys")

# Callables allowed inside Python-literal results
_SAFE_CALLS = {
    "datetime": datetime,
    "datetime.datetime": datetime,
    "date": date,
    "datetime.date": date,
    "timedelta": timedelta,
    "datetime.timedelta": timedelta,
    "timezone": timezone,
    "datetime.timezone": timezone,
    "Decimal": Decimal,
    "decimal.Decimal": Decimal,
}

_SAFE_NAMES = {
    "timezone.utc": timezone.utc,
    "datetime.timezone.utc": timezone.utc,
}


def _dotted_name(node: ast.AST) -> str:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return f"{_dotted_name(node.value)}.{node.attr}"
    raise ValueError(f"Unsupported expression: {ast.dump(node)}")


def _literal_value(node: ast.AST) -> Any:
    """Evaluate literals plus whitelisted datetime/Decimal constructors."""
    if isinstance(node, ast.Constant):
        return node.value
    if isinstance(node, ast.List):
        return [_literal_value(item) for item in node.elts]
    if isinstance(node, ast.Tuple):
        return tuple(_literal_value(item) for item in node.elts)
    if isinstance(node, ast.Dict):
        return {
            _literal_value(key): _literal_value(value)
            for key, value in zip(node.keys, node.values)
        }
    if isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.USub, ast.UAdd)):
        operand = _literal_value(node.operand)
        if isinstance(operand, (int, float)):
            return -operand if isinstance(node.op, ast.USub) else operand
    if isinstance(node, ast.Call):
        func = _SAFE_CALLS.get(_dotted_name(node.func))
        if func is None:
            raise ValueError(f"Call not allowed in SQL result: {_dotted_name(node.func)}")
        args = [_literal_value(arg) for arg in node.args]
        kwargs = {kw.arg: _literal_value(kw.value) for kw in node.keywords if kw.arg}
        return func(*args, **kwargs)
    if isinstance(node, (ast.Attribute, ast.Name)):
        name = _dotted_name(node)
        if name in _SAFE_NAMES:
            return _SAFE_NAMES[name]
    raise ValueError(f"Unsupported expression in SQL result: {ast.dump(node)}")


def _parse_python_literal(sql_result: str) -> List[Dict[str, Any]]:
    tree = ast.parse(sql_result.strip(), mode="eval")
    parsed = _literal_value(tree.body)
    if not isinstance(parsed, list):
        raise ValueError("SQL result is not a list")
    return [row for row in parsed if isinstance(row, dict)]


def _parse_pipe_table(sql_result: str) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    lines = sql_result.strip().split('\n')
    if len(lines) < 2:
        return rows

    header_line = lines[0].strip()
    bordered = header_line.startswith('|') and header_line.endswith('|')
    if bordered:
        header_line = header_line[1:-1]
    headers = [h.strip() for h in header_line.split('|')]
    if not all(headers):
        logger.warning(f"Empty column name in SQL result header: {lines[0]!r}")
        return rows

    for line in lines[1:]:
        line = line.strip()
        if not line:
            continue
        # Markdown-style separator line
        if set(line) <= set('|-+: '):
            continue
        if bordered and line.startswith('|') and line.endswith('|'):
            line = line[1:-1]

        values = [v.strip() for v in line.split('|')]
        if len(values) != len(headers):
            logger.debug(f"Skipping SQL result line with {len(values)} cells (expected {len(headers)}): {line!r}")
            continue

        rows.append({header: (value or None) for header, value in zip(headers, values)})

    return rows


def parse_sql_result_to_rows(sql_result: str) -> List[Dict[str, Any]]:
    """
    Parse SQL result string into list of dictionaries.

    Args:
        sql_result: SQL result string (Python list, JSON, or pipe-separated format)

    Returns:
        List of row dicts. Pipe-separated cells stay strings (empty cells
        become None); timestamps are left for the journey calculator.
    """
    if not sql_result or not sql_result.strip():
        return []

    if sql_result.strip().startswith('['):
        try:
            return _parse_python_literal(sql_result)
        except (ValueError, SyntaxError, TypeError) as e:
            logger.debug(f"Failed to parse as Python list: {e}")

        try:
            parsed = json.loads(sql_result)
            if isinstance(parsed, list):
                return [row for row in parsed if isinstance(row, dict)]
        except json.JSONDecodeError as e:
            logger.debug(f"Failed to parse as JSON: {e}")

    return _parse_pipe_table(sql_result)


def rows_from_mappings(rows: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Convert SQLAlchemy Row objects (or any mappings) to plain dicts.
    """
    result: List[Dict[str, Any]] = []
    for row in rows:
        mapping = getattr(row, "_mapping", row)
        if not isinstance(mapping, Mapping):
            raise TypeError(f"Expected a mapping or SQLAlchemy Row, got {type(row).__name__}")
        result.append(dict(mapping))
    return result
