from __future__ import annotations

import json
import math
from dataclasses import fields
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .allocation import from_percentage, validate_allocation
from .calendar_days import format_day, parse_day
from .layout import RowLayout
from .models import Assignment, DayAllocationReport, EngineConfig, LayoutConfig, Person, Project

_ASSIGNMENT_REQUIRED_COLUMNS = {"id", "person_id", "project_id", "start_date", "end_date", "allocation"}
_PROJECT_REQUIRED_COLUMNS = {"id", "name"}
_ALLOCATION_UNITS = {"fraction", "percent"}


def _require_columns(df: pd.DataFrame, required: Iterable[str], source: str) -> None:
    missing = sorted(col for col in required if col not in df.columns)
    if missing:
        raise ValueError(f"{source} missing required columns: {', '.join(missing)}")


def _is_missing(value: object) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def _parse_bool(value: object, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if _is_missing(value):
        return True
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "t", "1", "yes", "y"}:
            return True
        if lowered in {"false", "f", "0", "no", "n"}:
            return False
    raise ValueError(f"cannot interpret boolean value '{value}' in '{field_name}'")


def _parse_wire_day(value: object, field_name: str) -> date:
    try:
        return parse_day(str(value))
    except ValueError as exc:
        raise ValueError(f"invalid date in '{field_name}': {value}") from exc


def _optional_str(value: object) -> Optional[str]:
    if _is_missing(value):
        return None
    text = str(value).strip()
    return text or None


def assignment_from_record(record: Dict[str, object], allocation_unit: str = "fraction") -> Assignment:
    if allocation_unit not in _ALLOCATION_UNITS:
        raise ValueError(f"allocation_unit must be one of: {', '.join(sorted(_ALLOCATION_UNITS))}")
    for key in _ASSIGNMENT_REQUIRED_COLUMNS:
        if _is_missing(record.get(key)):
            raise ValueError(f"assignment is missing '{key}'")
    try:
        allocation = float(record["allocation"])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid allocation for assignment {record['id']}: {record['allocation']!r}") from exc
    if allocation_unit == "percent":
        allocation = from_percentage(allocation)
    assignment = Assignment(
        id=str(record["id"]),
        person_id=str(record["person_id"]),
        project_id=str(record["project_id"]),
        start_day=_parse_wire_day(record["start_date"], "start_date"),
        end_day=_parse_wire_day(record["end_date"], "end_date"),
        allocation=validate_allocation(allocation, f"allocation of assignment {record['id']}"),
        is_billable=_parse_bool(record.get("is_billable", True), "is_billable"),
    )
    if assignment.start_day > assignment.end_day:
        raise ValueError(
            f"assignment {assignment.id} ends ({record['end_date']}) before it starts ({record['start_date']})"
        )
    return assignment


def load_assignments(path: str | Path, allocation_unit: str = "fraction") -> List[Assignment]:
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    _require_columns(df, _ASSIGNMENT_REQUIRED_COLUMNS, "assignments.csv")
    records = [
        {key: (value if value != "" else None) for key, value in record.items()}
        for record in df.to_dict(orient="records")
    ]
    return [assignment_from_record(record, allocation_unit) for record in records]


def person_from_record(entry: Dict[str, object]) -> Person:
    person_id = entry.get("id")
    if person_id is None or str(person_id).strip() == "":
        raise ValueError("person id is required")
    return Person(
        id=str(person_id),
        name=str(entry.get("name") or ""),
        profile=str(entry.get("profile") or ""),
        status=str(entry.get("status") or "Active"),
        type=str(entry.get("type") or "Internal"),
    )


def load_people(path: str | Path) -> List[Person]:
    data = json.loads(Path(path).read_text())
    if not isinstance(data, list):
        raise ValueError("people file must be a JSON array")
    people = []
    for entry in data:
        if not isinstance(entry, dict):
            raise ValueError("people entries must be objects")
        people.append(person_from_record(entry))
    return people


def project_from_record(record: Dict[str, object]) -> Project:
    if _is_missing(record.get("id")) or _is_missing(record.get("name")):
        raise ValueError("project id and name are required")
    fte_raw = record.get("fte")
    fte: Optional[float] = None
    if not _is_missing(fte_raw) and str(fte_raw).strip() != "":
        try:
            fte = float(fte_raw)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"invalid fte for project {record['id']}: {fte_raw!r}") from exc
    return Project(
        id=str(record["id"]),
        name=str(record["name"]),
        status=_optional_str(record.get("status")) or "In Progress",
        client_id=_optional_str(record.get("client_id")),
        fte=fte,
    )


def load_projects(path: str | Path) -> List[Project]:
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    _require_columns(df, _PROJECT_REQUIRED_COLUMNS, "projects.csv")
    return [project_from_record(record) for record in df.to_dict(orient="records")]


def _layout_from_dict(data: Dict[str, object]) -> LayoutConfig:
    defaults = LayoutConfig()
    values: Dict[str, object] = {}
    for spec in fields(LayoutConfig):
        if spec.name not in data:
            continue
        raw = data[spec.name]
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ValueError(f"layout.{spec.name} must be a number")
        if spec.name in ("max_visible_lanes", "expand_months"):
            if int(raw) != raw or raw <= 0:
                raise ValueError(f"layout.{spec.name} must be a positive integer")
            values[spec.name] = int(raw)
        else:
            if raw < 0:
                raise ValueError(f"layout.{spec.name} must not be negative")
            values[spec.name] = float(raw)
    unknown = sorted(set(data) - {spec.name for spec in fields(LayoutConfig)})
    if unknown:
        raise ValueError(f"unknown layout settings: {', '.join(unknown)}")
    layout = LayoutConfig(**{**{spec.name: getattr(defaults, spec.name) for spec in fields(LayoutConfig)}, **values})
    if layout.day_width_px <= 0:
        raise ValueError("layout.day_width_px must be positive")
    return layout


def config_from_dict(data: Dict[str, object]) -> EngineConfig:
    try:
        window_start = parse_day(data["window_start"])
    except (KeyError, ValueError, TypeError, AttributeError) as exc:
        raise ValueError("window_start must be a YYYY-MM-DD string") from exc
    try:
        window_end = parse_day(data["window_end"])
    except (KeyError, ValueError, TypeError, AttributeError) as exc:
        raise ValueError("window_end must be a YYYY-MM-DD string") from exc
    if window_end < window_start:
        raise ValueError("window_end must not be earlier than window_start")
    layout_raw = data.get("layout") or {}
    if not isinstance(layout_raw, dict):
        raise ValueError("layout must be an object")
    logging_level = data.get("logging_level", "INFO")
    if not isinstance(logging_level, str):
        raise ValueError("logging_level must be a string")
    return EngineConfig(
        window_start=window_start,
        window_end=window_end,
        layout=_layout_from_dict(layout_raw),
        logging_level=logging_level,
    )


def load_config(path: str | Path) -> EngineConfig:
    data = json.loads(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError("config file must be a JSON object")
    return config_from_dict(data)


def report_to_frame(report: Sequence[DayAllocationReport]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"day": format_day(item.day), "total_allocation": round(item.total_allocation, 4)} for item in report],
        columns=["day", "total_allocation"],
    )


_LAYOUT_COLUMNS = [
    "person_id",
    "assignment_id",
    "project",
    "start_date",
    "end_date",
    "lane",
    "left_px",
    "width_px",
    "top_px",
    "height_px",
    "row_top_px",
    "row_height_px",
    "label_left_px",
    "label_max_width_px",
    "is_sticky",
]


def layout_to_frame(rows: Sequence[RowLayout]) -> pd.DataFrame:
    records = []
    for row in rows:
        for bar in row.bars:
            records.append(
                {
                    "person_id": row.person.id,
                    "assignment_id": bar.assignment.id,
                    "project": bar.project.name,
                    "start_date": format_day(bar.assignment.start_day),
                    "end_date": format_day(bar.assignment.end_day),
                    "lane": bar.lane_index,
                    "left_px": bar.rect.left_px,
                    "width_px": bar.rect.width_px,
                    "top_px": bar.rect.top_px,
                    "height_px": bar.rect.height_px,
                    "row_top_px": row.top_px,
                    "row_height_px": row.height_px,
                    "label_left_px": bar.sticky.label_left_px,
                    "label_max_width_px": bar.sticky.label_max_width_px,
                    "is_sticky": bar.sticky.is_sticky,
                }
            )
    return pd.DataFrame(records, columns=_LAYOUT_COLUMNS)


def ensure_directory(path: str | Path) -> Path:
    target = Path(path)
    target.mkdir(parents=True, exist_ok=True)
    return target


def write_csv(df: pd.DataFrame, path: str | Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
