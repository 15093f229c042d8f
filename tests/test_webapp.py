from __future__ import annotations

import pytest

from staffing_timeline.models import LayoutConfig
from webapp.app import create_app

ASSIGNMENTS = [
    {"id": "a1", "person_id": "p1", "project_id": "proj-a", "start_date": "2024-01-02",
     "end_date": "2024-01-10", "allocation": 0.75},
    {"id": "a2", "person_id": "p1", "project_id": "proj-b", "start_date": "2024-01-05",
     "end_date": "2024-01-08", "allocation": 0.5},
    {"id": "a3", "person_id": "p2", "project_id": "proj-a", "start_date": "2024-01-03",
     "end_date": "2024-01-04", "allocation": 0.25},
]
PEOPLE = [{"id": "p1", "name": "Ana Ruiz"}, {"id": "p2", "name": "Bo Chen", "type": "External"}]
PROJECTS = [{"id": "proj-a", "name": "Atlas"}, {"id": "proj-b", "name": "Beacon", "status": "On Hold"}]
VIEWPORT = {"window_start": "2024-01-01", "window_end": "2024-03-31"}


@pytest.fixture
def client():
    app = create_app()
    app.config["TESTING"] = True
    return app.test_client()


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_overallocation_single_day_message(client) -> None:
    candidate = {"person_id": "p1", "start_date": "2024-01-01", "end_date": "2024-01-02", "allocation": 0.5}

    response = client.post("/api/overallocation", json={"assignments": ASSIGNMENTS, "candidate": candidate})

    body = response.get_json()
    assert response.status_code == 200
    assert body["is_overallocated"] is True
    assert body["overallocated_dates"] == [{"date": "2024-01-02", "total_allocation": 1.25}]
    assert body["message"] == "Overallocated at 125% on 2024-01-02"


def test_overallocation_respects_exclude_id(client) -> None:
    candidate = {"person_id": "p1", "start_date": "2024-01-02", "end_date": "2024-01-10", "allocation": 0.5}

    response = client.post(
        "/api/overallocation", json={"assignments": ASSIGNMENTS, "candidate": candidate, "exclude_id": "a1"}
    )

    body = response.get_json()
    assert body["is_overallocated"] is False
    assert body["overallocated_dates"] == []
    assert body["message"] == ""


def test_overallocation_accepts_percent_payloads(client) -> None:
    assignments = [dict(item, allocation=item["allocation"] * 100) for item in ASSIGNMENTS]
    candidate = {"person_id": "p1", "start_date": "2024-01-05", "end_date": "2024-01-05", "allocation": 0.5}

    response = client.post(
        "/api/overallocation",
        json={"assignments": assignments, "candidate": candidate, "allocation_unit": "percent"},
    )

    body = response.get_json()
    assert body["overallocated_dates"] == [{"date": "2024-01-05", "total_allocation": 1.75}]


@pytest.mark.parametrize(
    "payload",
    [
        {"assignments": ASSIGNMENTS},
        {"assignments": "nope", "candidate": {}},
        {
            "assignments": ASSIGNMENTS,
            "candidate": {"person_id": "p1", "start_date": "2024-01-05", "end_date": "2024-01-01", "allocation": 0.5},
        },
        {
            "assignments": ASSIGNMENTS,
            "candidate": {"person_id": "p1", "start_date": "2024-01-01", "end_date": "2024-01-05", "allocation": 0},
        },
        {
            "assignments": ASSIGNMENTS,
            "candidate": {"person_id": "p1", "start_date": "2024-01-01", "end_date": "2024-01-05", "allocation": "1"},
        },
    ],
)
def test_overallocation_rejects_bad_input(client, payload) -> None:
    response = client.post("/api/overallocation", json=payload)
    assert response.status_code == 400
    assert "error" in response.get_json()


def test_non_json_body_is_rejected(client) -> None:
    response = client.post("/api/layout", data="not json", content_type="text/plain")
    assert response.status_code == 400


def test_layout_returns_rows_and_bars(client) -> None:
    response = client.post(
        "/api/layout",
        json={"people": PEOPLE, "projects": PROJECTS, "assignments": ASSIGNMENTS, "viewport": VIEWPORT},
    )

    body = response.get_json()
    assert response.status_code == 200
    assert body["track_width_px"] == 91 * 40
    ana, bo = body["rows"]
    assert (ana["top_px"], ana["height_px"], ana["max_concurrency"]) == (0, 84, 2)
    assert [bar["lane_index"] for bar in ana["bars"]] == [0, 1]
    assert ana["bars"][0]["rect"] == {"left_px": 40, "width_px": 360, "top_px": 8, "height_px": 32}
    assert bo["top_px"] == 84
    assert bo["bars"][0]["rect"]["width_px"] == 80


def test_layout_applies_filters_and_layout_overrides(client) -> None:
    viewport = dict(VIEWPORT, layout={"day_width_px": 20})

    response = client.post(
        "/api/layout",
        json={
            "people": PEOPLE,
            "projects": PROJECTS,
            "assignments": ASSIGNMENTS,
            "viewport": viewport,
            "filters": {"person_type": "External"},
        },
    )

    body = response.get_json()
    assert body["track_width_px"] == 91 * 20
    assert [row["person_id"] for row in body["rows"]] == ["p2"]


@pytest.mark.parametrize(
    "filters, message",
    [
        ({"search": 5}, "filters.search"),
        ({"person_type": ["External"]}, "filters.person_type"),
        ({"overallocated_only": "false"}, "filters.overallocated_only"),
        ({"overallocated_only": 1}, "filters.overallocated_only"),
    ],
)
def test_layout_rejects_mistyped_filters(client, filters, message) -> None:
    response = client.post(
        "/api/layout",
        json={"people": PEOPLE, "projects": PROJECTS, "assignments": ASSIGNMENTS, "viewport": VIEWPORT,
              "filters": filters},
    )

    assert response.status_code == 400
    assert message in response.get_json()["error"]


def test_layout_overallocated_only_filter(client) -> None:
    response = client.post(
        "/api/layout",
        json={"people": PEOPLE, "projects": PROJECTS, "assignments": ASSIGNMENTS, "viewport": VIEWPORT,
              "filters": {"overallocated_only": True}},
    )

    assert [row["person_id"] for row in response.get_json()["rows"]] == ["p1"]


def test_layout_uses_app_layout_config() -> None:
    client = create_app(LayoutConfig(min_bar_width_px=100)).test_client()

    response = client.post(
        "/api/layout",
        json={"people": PEOPLE, "projects": PROJECTS, "assignments": ASSIGNMENTS, "viewport": VIEWPORT},
    )

    bo = response.get_json()["rows"][1]
    assert bo["bars"][0]["rect"]["width_px"] == 100


def test_layout_rejects_bad_viewport(client) -> None:
    response = client.post(
        "/api/layout",
        json={"people": PEOPLE, "projects": PROJECTS, "assignments": ASSIGNMENTS,
              "viewport": {"window_start": "2024-03-01", "window_end": "2024-01-01"}},
    )
    assert response.status_code == 400
    assert "window_end" in response.get_json()["error"]


def test_utilization_snapshot(client) -> None:
    response = client.post(
        "/api/utilization", json={"people": PEOPLE, "assignments": ASSIGNMENTS, "on": "2024-01-06"}
    )

    body = response.get_json()
    assert body["on"] == "2024-01-06"
    assert [(row["person_id"], row["status"]) for row in body["people"]] == [
        ("p1", "overallocated"),
        ("p2", "underutilized"),
    ]
    assert body["people"][0]["utilization_pct"] == 125
