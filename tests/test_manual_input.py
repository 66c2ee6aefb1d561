from datetime import date
from types import SimpleNamespace

import pytest
from sqlmodel import Session, select

from recruitdash.analyzer.manual_input import (
    apply_manual_input,
    summarize_manual_metrics,
    validate_manual_input,
)
from recruitdash.connectors.normalizer import upsert_access_logs
from recruitdash.core.errors import NotFoundError, ValidationError
from recruitdash.models.normalized_models import CanonicalMetric

TODAY = date(2025, 12, 15)


@pytest.mark.parametrize(
    ("entry", "message"),
    [
        ({"date": "2025/12/01", "scout_reply_count": 1, "interview_count": 0}, "Invalid date format"),
        ({"date": "2025-02-30", "scout_reply_count": 1, "interview_count": 0}, "Invalid date format"),
        ({"date": "2025-12-16", "scout_reply_count": 1, "interview_count": 0}, "Future dates are not allowed"),
        ({"date": "2025-12-01", "interview_count": 0}, "scout_reply_count is required"),
        ({"date": "2025-12-01", "scout_reply_count": -1, "interview_count": 0}, "Negative values are not allowed"),
        ({"date": "2025-12-01", "scout_reply_count": 1.5, "interview_count": 0}, "Non-integer values are not allowed"),
        ({"date": "2025-12-01", "scout_reply_count": True, "interview_count": 0}, "Non-integer values are not allowed"),
    ],
)
def test_each_rule_has_its_own_message(entry: dict, message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        validate_manual_input(_payload([entry]), today=TODAY)


def test_future_date_is_reported_before_negative_count() -> None:
    entry = {"date": "2026-01-01", "scout_reply_count": -5, "interview_count": 0}

    with pytest.raises(ValidationError, match="Future dates are not allowed: 2026-01-01"):
        validate_manual_input(_payload([entry]), today=TODAY)


def test_negative_is_reported_before_non_integer() -> None:
    entry = {"date": "2025-12-01", "scout_reply_count": -1.5, "interview_count": 0}

    with pytest.raises(ValidationError, match="Negative values"):
        validate_manual_input(_payload([entry]), today=TODAY)


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ([], "Request body must be a JSON object"),
        ({"source": "guppy", "entries": []}, "clinic_id is required"),
        ({"clinic_id": {"x": 1}, "source": "guppy", "entries": []}, "clinic_id must be a string"),
        ({"clinic_id": "c1", "entries": []}, "source is required"),
        ({"clinic_id": "c1", "source": "indeed", "entries": []}, "Invalid source: indeed"),
        ({"clinic_id": "c1", "source": "guppy", "entries": {}}, "entries must be an array"),
    ],
)
def test_request_shape_errors(payload, message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        validate_manual_input(payload, today=TODAY)


def test_integral_floats_are_accepted() -> None:
    _, _, entries = validate_manual_input(
        _payload([{"date": "2025-12-01", "scout_reply_count": 2.0, "interview_count": 0}]),
        today=TODAY,
    )

    assert entries[0]["scout_reply_count"] == 2
    assert isinstance(entries[0]["scout_reply_count"], int)


def test_one_bad_entry_rejects_the_whole_request(session: Session, clinic) -> None:
    entries = [
        {"date": "2025-12-01", "scout_reply_count": 1, "interview_count": 1},
        {"date": "2025-12-02", "scout_reply_count": -1, "interview_count": 1},
    ]

    with pytest.raises(ValidationError):
        apply_manual_input(session, _payload(entries, clinic.id), today=TODAY)

    assert session.exec(select(CanonicalMetric)).all() == []


def test_unknown_clinic_is_not_found(session: Session) -> None:
    with pytest.raises(NotFoundError, match="Clinic not found"):
        apply_manual_input(session, _payload([], "missing"), today=TODAY)


def test_manual_input_keeps_scraped_counters(session: Session, clinic) -> None:
    upsert_access_logs(
        session,
        clinic.id,
        "guppy",
        [{"date": "2025-12-01", "display_count": 100, "view_count": 20}],
    )

    count = apply_manual_input(
        session,
        _payload(
            [{"date": "2025-12-01", "scout_reply_count": 4, "interview_count": 2}],
            clinic.id,
        ),
        today=TODAY,
    )

    row = session.exec(select(CanonicalMetric)).one()
    assert count == 1
    assert (row.display_count, row.view_count) == (100, 20)
    assert (row.scout_reply_count, row.interview_count) == (4, 2)


def test_manual_input_creates_aggregate_rows_with_zero_traffic(
    session: Session, clinic
) -> None:
    count = apply_manual_input(
        session,
        _payload(
            [
                {"date": "2025-12-03", "scout_reply_count": 0, "interview_count": 1},
                {"date": "2025-12-04", "scout_reply_count": 2, "interview_count": 0},
                {"date": "2025-12-03", "scout_reply_count": 5, "interview_count": 1},
            ],
            clinic.id,
            source="jobmedley",
        ),
        today=TODAY,
    )

    rows = session.exec(select(CanonicalMetric).order_by(CanonicalMetric.date)).all()
    assert count == 2
    assert [(r.date, r.scout_reply_count) for r in rows] == [
        ("2025-12-03", 5),
        ("2025-12-04", 2),
    ]
    assert all(r.job_type is None and r.display_count == 0 for r in rows)
    assert all(r.source == "jobmedley" for r in rows)


def test_all_null_manual_fields_are_missing() -> None:
    totals = summarize_manual_metrics([_manual(None, None), _manual(None, None)])

    assert totals.missing_manual_metrics is True
    assert totals.total_scout_reply_count is None
    assert totals.total_interview_count is None


def test_a_single_zero_is_data_not_missing() -> None:
    totals = summarize_manual_metrics([_manual(None, None), _manual(0, None)])

    assert totals.missing_manual_metrics is False
    assert totals.total_scout_reply_count == 0
    assert totals.total_interview_count == 0


def test_no_rows_means_missing() -> None:
    assert summarize_manual_metrics([]).missing_manual_metrics is True


# ── helpers ──


def _payload(entries, clinic_id: str = "c1", source: str = "guppy") -> dict:
    return {"clinic_id": clinic_id, "source": source, "entries": entries}


def _manual(scout_reply_count, interview_count) -> SimpleNamespace:
    return SimpleNamespace(
        scout_reply_count=scout_reply_count, interview_count=interview_count
    )
