import pytest

from recruitdash.connectors.job_type_classifier import (
    JobTypeClassifier,
    classify_job_type,
)
from recruitdash.core.metric_registry import JobType


@pytest.mark.parametrize(
    ("title", "expected"),
    [
        ("歯科衛生士（常勤）", JobType.DH),
        ("DH募集 週3日〜OK", JobType.DH),
        ("歯科医師 / 勤務医", JobType.DR),
        ("歯科助手・アシスタント", JobType.DA),
        ("受付スタッフ", JobType.RECEPTIONIST),
        ("歯科技工士", JobType.TECHNICIAN),
        ("管理栄養士", JobType.DIETITIAN),
        ("保育士（院内託児）", JobType.NURSERY),
        ("幼稚園教諭", JobType.KINDERGARTEN),
        ("医療事務", JobType.MEDICAL_CLERK),
    ],
)
def test_default_rules(title: str, expected: JobType) -> None:
    assert classify_job_type(title) == expected


def test_unmatched_or_empty_text_is_none() -> None:
    assert classify_job_type("院長候補") is None
    assert classify_job_type("") is None
    assert classify_job_type(None) is None


def test_first_matching_rule_wins() -> None:
    classifier = JobTypeClassifier(
        [
            (("受付",), JobType.RECEPTIONIST),
            (("事務",), JobType.MEDICAL_CLERK),
        ]
    )

    assert classifier.classify("受付・事務") == JobType.RECEPTIONIST
