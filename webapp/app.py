from __future__ import annotations

import logging
import os
from datetime import date
from dataclasses import asdict
from typing import Dict, List, Optional

from flask import Flask, jsonify, request

from staffing_timeline.allocation import check_overallocation, summarize_overallocation, utilization_snapshot
from staffing_timeline.calendar_days import format_day, parse_day
from staffing_timeline.io_utils import (
    assignment_from_record,
    config_from_dict,
    person_from_record,
    project_from_record,
)
from staffing_timeline.layout import RowLayout, layout_timeline
from staffing_timeline.models import (
    Assignment,
    CandidateAssignment,
    EngineConfig,
    LayoutConfig,
    TimelineFilters,
)
from staffing_timeline.viewport import Viewport

logger = logging.getLogger(__name__)


def _require_list(data: Dict[str, object], key: str) -> List[Dict[str, object]]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise ValueError(f"{key} must be an array of objects")
    return value


def _optional_day(data: Dict[str, object], key: str) -> Optional[date]:
    value = data.get(key)
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a YYYY-MM-DD string")
    return parse_day(value)


def _assignments_from_payload(data: Dict[str, object]) -> List[Assignment]:
    unit = data.get("allocation_unit", "fraction")
    return [assignment_from_record(item, str(unit)) for item in _require_list(data, "assignments")]


def _candidate_from_payload(data: Dict[str, object]) -> CandidateAssignment:
    raw = data.get("candidate")
    if not isinstance(raw, dict):
        raise ValueError("candidate must be an object")
    for key in ("person_id", "start_date", "end_date", "allocation"):
        if key not in raw:
            raise ValueError(f"candidate is missing '{key}'")
    allocation = raw["allocation"]
    if isinstance(allocation, bool) or not isinstance(allocation, (int, float)):
        raise ValueError("candidate allocation must be a number")
    return CandidateAssignment(
        person_id=str(raw["person_id"]),
        start_day=parse_day(str(raw["start_date"])),
        end_day=parse_day(str(raw["end_date"])),
        allocation=float(allocation),
    )


def _optional_text(data: Dict[str, object], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"filters.{key} must be a string")
    return value or None


def _filters_from_payload(data: Dict[str, object]) -> TimelineFilters:
    raw = data.get("filters") or {}
    if not isinstance(raw, dict):
        raise ValueError("filters must be an object")
    overallocated_only = raw.get("overallocated_only", False)
    if not isinstance(overallocated_only, bool):
        raise ValueError("filters.overallocated_only must be true or false")
    return TimelineFilters(
        person_profile=_optional_text(raw, "person_profile"),
        person_status=_optional_text(raw, "person_status"),
        person_type=_optional_text(raw, "person_type"),
        project_status=_optional_text(raw, "project_status"),
        date_from=_optional_day(raw, "date_from"),
        date_to=_optional_day(raw, "date_to"),
        overallocated_only=overallocated_only,
        search=_optional_text(raw, "search"),
    )


def _row_to_dict(row: RowLayout) -> Dict[str, object]:
    return {
        "person_id": row.person.id,
        "top_px": row.top_px,
        "height_px": row.height_px,
        "max_concurrency": row.packing.max_concurrency,
        "overflow_count": row.overflow_count,
        "bars": [
            {
                "assignment_id": bar.assignment.id,
                "project_id": bar.project.id,
                "project_name": bar.project.name,
                "start_date": format_day(bar.assignment.start_day),
                "end_date": format_day(bar.assignment.end_day),
                "allocation": bar.assignment.allocation,
                "lane_index": bar.lane_index,
                "rect": {
                    "left_px": bar.rect.left_px,
                    "width_px": bar.rect.width_px,
                    "top_px": bar.rect.top_px,
                    "height_px": bar.rect.height_px,
                },
                "sticky": {
                    "label_left_px": bar.sticky.label_left_px,
                    "label_max_width_px": bar.sticky.label_max_width_px,
                    "is_sticky": bar.sticky.is_sticky,
                },
            }
            for bar in row.bars
        ],
    }


def create_app(layout_config: Optional[LayoutConfig] = None) -> Flask:
    app = Flask(__name__)
    app.config["LAYOUT_CONFIG"] = layout_config or LayoutConfig()
    app.config["LOG_LEVEL"] = os.getenv("STAFFING_TIMELINE_LOG_LEVEL", "INFO")
    logging.getLogger("staffing_timeline").setLevel(
        getattr(logging, app.config["LOG_LEVEL"].upper(), logging.INFO)
    )

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    @app.post("/api/overallocation")
    def overallocation():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "request body must be a JSON object"}), 400
        try:
            existing = _assignments_from_payload(data)
            candidate = _candidate_from_payload(data)
            exclude_id = data.get("exclude_id")
            report = check_overallocation(
                existing, candidate, exclude_id=str(exclude_id) if exclude_id is not None else None
            )
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        summary = summarize_overallocation(report, candidate.allocation)
        return jsonify(
            {
                "is_overallocated": summary.is_overallocated,
                "max_allocation": summary.max_allocation,
                "message": summary.message,
                "overallocated_dates": [
                    {"date": format_day(item.day), "total_allocation": item.total_allocation} for item in report
                ],
            }
        )

    @app.post("/api/layout")
    def layout():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "request body must be a JSON object"}), 400
        try:
            people = [person_from_record(item) for item in _require_list(data, "people")]
            projects = [project_from_record(item) for item in _require_list(data, "projects")]
            assignments = _assignments_from_payload(data)
            viewport_raw = data.get("viewport")
            if not isinstance(viewport_raw, dict):
                raise ValueError("viewport must be an object")
            cfg: EngineConfig = config_from_dict(
                {**viewport_raw, "layout": {**asdict(app.config["LAYOUT_CONFIG"]), **(viewport_raw.get("layout") or {})}}
            )
            viewport = Viewport.from_config(cfg.window_start, cfg.window_end, cfg.layout).with_scroll(
                float(viewport_raw.get("scroll_left_px", 0.0))
            )
            dragging_id = data.get("dragging_id")
            rows = layout_timeline(
                people,
                assignments,
                projects,
                viewport,
                filters=_filters_from_payload(data),
                config=cfg.layout,
                dragging_id=str(dragging_id) if dragging_id is not None else None,
            )
        except (TypeError, ValueError) as exc:
            return jsonify({"error": str(exc)}), 400
        return jsonify(
            {
                "window_start": format_day(viewport.window_start),
                "window_end": format_day(viewport.window_end),
                "track_width_px": viewport.track_width_px,
                "rows": [_row_to_dict(row) for row in rows],
            }
        )

    @app.post("/api/utilization")
    def utilization():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "request body must be a JSON object"}), 400
        try:
            people = [person_from_record(item) for item in _require_list(data, "people")]
            assignments = _assignments_from_payload(data)
            on_day = _optional_day(data, "on") or date.today()
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        snapshot = utilization_snapshot(people, assignments, on_day)
        return jsonify({"on": format_day(on_day), "people": snapshot.to_dict(orient="records")})

    return app
