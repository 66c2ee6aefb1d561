from datetime import datetime, timezone
from types import SimpleNamespace

from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from recruitdash.connectors.normalizer import (
    collapse_by_date,
    dedupe_by_source,
    dedupe_metric_rows,
    ingest_scrape_result,
    upsert_access_logs,
    upsert_scout_messages,
    upsert_search_ranks,
)
from recruitdash.models.normalized_models import CanonicalMetric, ScoutMessage
from recruitdash.models.raw_models import RawAccessLog, ScrapeResult


# ── Write path ──


def test_collapse_by_date_keeps_last_record_per_date() -> None:
    logs = [
        RawAccessLog(date="2025-12-01", display_count=10),
        RawAccessLog(date="2025-12-02", display_count=20),
        RawAccessLog(date="2025-12-01", display_count=30),
    ]

    collapsed = collapse_by_date(logs)

    assert [(log.date, log.display_count) for log in collapsed] == [
        ("2025-12-01", 30),
        ("2025-12-02", 20),
    ]


def test_upsert_replaces_counters_instead_of_adding(session: Session, clinic) -> None:
    upsert_access_logs(session, clinic.id, "guppy", [_log("2025-12-01", display=100)])
    tally = upsert_access_logs(
        session, clinic.id, "guppy", [_log("2025-12-01", display=250, view=40)]
    )

    rows = session.exec(select(CanonicalMetric)).all()
    assert tally.saved == 1 and tally.attempted == 1
    assert len(rows) == 1
    assert rows[0].display_count == 250
    assert rows[0].view_count == 40
    assert rows[0].job_type is None


def test_upsert_counts_collapsed_rows_as_attempted(session: Session, clinic) -> None:
    tally = upsert_access_logs(
        session,
        clinic.id,
        "guppy",
        [_log("2025-12-01", display=1), _log("2025-12-01", display=2), _log("2025-12-02")],
    )

    assert (tally.saved, tally.attempted, tally.failed) == (2, 2, 0)


def test_upsert_with_no_input_is_a_zero_tally(session: Session, clinic) -> None:
    assert upsert_access_logs(session, clinic.id, "guppy", None).attempted == 0
    assert upsert_access_logs(session, clinic.id, "guppy", []).saved == 0
    assert upsert_scout_messages(session, clinic.id, "guppy", None).attempted == 0


def test_upsert_skips_invalid_records_and_saves_the_rest(session: Session, clinic) -> None:
    tally = upsert_access_logs(
        session,
        clinic.id,
        "jobmedley",
        [
            {"date": "2025-12-01", "view_count": 5},
            {"date": "2025-12-02", "view_count": -1},
        ],
    )

    assert tally.attempted == 2
    assert tally.saved == 1
    assert len(tally.errors) == 1


def test_upsert_continues_after_a_storage_failure(
    session: Session, clinic, monkeypatch
) -> None:
    real_commit = session.commit
    calls = {"n": 0}

    def flaky_commit() -> None:
        calls["n"] += 1
        if calls["n"] == 1:
            raise OperationalError("INSERT", {}, Exception("database is locked"))
        real_commit()

    monkeypatch.setattr(session, "commit", flaky_commit)

    tally = upsert_access_logs(
        session, clinic.id, "guppy", [_log("2025-12-01"), _log("2025-12-02")]
    )

    assert tally.attempted == 2
    assert tally.saved == 1
    assert tally.failed == 1
    assert "2025-12-01" in tally.errors[0]


def test_scrape_upsert_leaves_manual_fields_alone(session: Session, clinic) -> None:
    session.add(
        CanonicalMetric(
            clinic_id=clinic.id,
            date="2025-12-01",
            source="guppy",
            scout_reply_count=3,
            interview_count=0,
        )
    )
    session.commit()

    upsert_access_logs(session, clinic.id, "guppy", [_log("2025-12-01", display=80)])

    row = session.exec(select(CanonicalMetric)).one()
    assert row.display_count == 80
    assert row.scout_reply_count == 3
    assert row.interview_count == 0


def test_search_rank_survives_a_log_without_one(session: Session, clinic) -> None:
    upsert_access_logs(
        session, clinic.id, "guppy", [RawAccessLog(date="2025-12-01", search_rank=4)]
    )
    upsert_access_logs(session, clinic.id, "guppy", [_log("2025-12-01", display=9)])

    row = session.exec(select(CanonicalMetric)).one()
    assert row.search_rank == 4
    assert row.display_count == 9


def test_rank_only_record_keeps_traffic_counters(session: Session, clinic) -> None:
    upsert_access_logs(
        session,
        clinic.id,
        "jobmedley",
        [{"date": "2025-12-01", "view_count": 120, "application_count": 3}],
    )

    report = ingest_scrape_result(
        session,
        ScrapeResult.model_validate(
            {
                "clinic_id": clinic.id,
                "source": "jobmedley",
                "search_ranks": [{"date": "2025-12-01", "search_rank": 4}],
            }
        ),
    )

    row = session.exec(select(CanonicalMetric)).one()
    assert report.search_ranks.saved == 1
    assert report.metrics.attempted == 0
    assert (row.view_count, row.application_count) == (120, 3)
    assert row.search_rank == 4


def test_rank_only_record_creates_an_aggregate_row(session: Session, clinic) -> None:
    tally = upsert_search_ranks(
        session,
        clinic.id,
        "jobmedley",
        [{"date": "2025-12-02", "search_rank": 7}, {"date": "2025-12-03", "search_rank": 0}],
    )

    row = session.exec(select(CanonicalMetric)).one()
    assert (tally.attempted, tally.saved) == (2, 1)
    assert row.job_type is None
    assert (row.view_count, row.search_rank) == (0, 7)


def test_scout_messages_are_replaced_per_day(session: Session, clinic) -> None:
    upsert_scout_messages(
        session, clinic.id, "guppy", [{"date": "2025-12-01", "sent_count": 10, "reply_count": 1}]
    )
    upsert_scout_messages(
        session, clinic.id, "guppy", [{"date": "2025-12-01", "sent_count": 12, "reply_count": 2}]
    )

    row = session.exec(select(ScoutMessage)).one()
    assert (row.sent_count, row.reply_count) == (12, 2)


def test_ingest_scrape_result_routes_job_type_groups(session: Session, clinic) -> None:
    result = ScrapeResult.model_validate(
        {
            "clinic_id": clinic.id,
            "source": "guppy",
            "access_logs": [
                {"date": "2025-12-01", "display_count": 100, "view_count": 20},
                {"date": "2025-12-02", "display_count": 200, "view_count": 70},
            ],
            "job_type_access_logs": [
                {"job_title": "歯科衛生士（常勤）", "access_logs": [{"date": "2025-12-01", "view_count": 4}]},
                {"job_type": "dh", "access_logs": [{"date": "2025-12-02", "view_count": 6}]},
                {"job_title": "院長候補", "access_logs": [{"date": "2025-12-01", "view_count": 9}]},
            ],
            "scout_days": [{"date": "2025-12-01", "sent_count": 5, "reply_count": 1}],
        }
    )

    report = ingest_scrape_result(session, result)

    assert report.metrics.attempted == 4
    assert report.metrics.saved == 4
    assert report.scout_messages.saved == 1
    assert [a.date for a in report.view_rate_alerts] == ["2025-12-02"]

    dh_rows = session.exec(
        select(CanonicalMetric).where(CanonicalMetric.job_type == "dh")
    ).all()
    assert sorted(r.date for r in dh_rows) == ["2025-12-01", "2025-12-02"]


# ── Read path ──


def test_dedupe_prefers_newer_write_in_either_order() -> None:
    older = _row("2025-12-01", updated_at=datetime(2025, 12, 1, 9, tzinfo=timezone.utc), display=1)
    newer = _row("2025-12-01", updated_at="2025-12-01T10:00:00Z", display=2)

    assert dedupe_metric_rows([older, newer]) == [newer]
    assert dedupe_metric_rows([newer, older]) == [newer]


def test_dedupe_falls_back_to_created_at() -> None:
    a = _row("2025-12-01", created_at="2025-12-01T09:00:00+09:00", display=1)
    b = _row("2025-12-01", created_at="2025-12-01T01:00:00Z", display=2)

    # 09:00 JST is 00:00 UTC, so b is newer
    assert dedupe_metric_rows([a, b]) == [b]


def test_dedupe_keeps_first_seen_when_timestamps_do_not_parse() -> None:
    first = _row("2025-12-01", updated_at="not a date", display=1)
    second = _row("2025-12-01", updated_at=None, display=2)

    assert dedupe_metric_rows([first, second]) == [first]


def test_dedupe_is_idempotent() -> None:
    rows = [
        _row("2025-12-02", job_type="dh", updated_at="2025-12-02T01:00:00Z"),
        _row("2025-12-01", updated_at="2025-12-01T01:00:00Z"),
        _row("2025-12-02", job_type="dh", updated_at="2025-12-02T03:00:00Z"),
        _row("2025-12-01", updated_at="2025-12-01T02:00:00Z"),
        _row("2025-12-01", job_type="da"),
    ]

    once = dedupe_metric_rows(rows)

    assert dedupe_metric_rows(once) == once
    assert len(once) == 3


def test_dedupe_sorts_by_date_then_job_type_with_aggregate_first() -> None:
    rows = [
        _row("2025-12-02", job_type=None),
        _row("2025-12-01", job_type="dh"),
        _row("2025-12-01", job_type=None),
        _row("2025-12-01", job_type="da"),
    ]

    result = dedupe_metric_rows(rows)

    assert [(r.date, r.job_type) for r in result] == [
        ("2025-12-01", None),
        ("2025-12-01", "da"),
        ("2025-12-01", "dh"),
        ("2025-12-02", None),
    ]


def test_dedupe_handles_empty_input() -> None:
    assert dedupe_metric_rows([]) == []
    assert dedupe_metric_rows(None) == []


def test_dedupe_by_source_keeps_one_row_per_portal() -> None:
    rows = [
        _row("2025-12-01", source="guppy"),
        _row("2025-12-01", source="jobmedley"),
        _row("2025-12-01", source="guppy", updated_at="2025-12-01T05:00:00Z"),
    ]

    result = dedupe_by_source(rows)

    assert [r.source for r in result] == ["guppy", "jobmedley"]
    assert result[0] is rows[2]


# ── helpers ──


def _log(date: str, display: int = 0, view: int = 0) -> RawAccessLog:
    return RawAccessLog(date=date, display_count=display, view_count=view)


def _row(
    date: str,
    job_type=None,
    source: str = "guppy",
    updated_at=None,
    created_at=None,
    display: int = 0,
) -> SimpleNamespace:
    return SimpleNamespace(
        date=date,
        job_type=job_type,
        source=source,
        updated_at=updated_at,
        created_at=created_at,
        display_count=display,
    )
