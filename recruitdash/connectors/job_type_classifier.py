"""RecruitDash — Job Type Classifier.

Collector-side helper that maps free-text posting titles to a job type.
Rules are evaluated in order and the first rule with a matching keyword wins,
so more specific titles must be listed before generic ones.
"""

from typing import List, Optional, Sequence, Tuple

from recruitdash.core.metric_registry import JobType

Rule = Tuple[Sequence[str], JobType]

DEFAULT_RULES: List[Rule] = [
    (("歯科医師", "医師", "ドクター", "Dr"), JobType.DR),
    (("歯科衛生士", "衛生士", "DH"), JobType.DH),
    (("歯科助手", "助手", "DA", "アシスタント"), JobType.DA),
    (("受付", "レセプション"), JobType.RECEPTIONIST),
    (("歯科技工士", "技工士"), JobType.TECHNICIAN),
    (("管理栄養士", "栄養士"), JobType.DIETITIAN),
    (("保育士", "保育"), JobType.NURSERY),
    (("幼稚園教諭", "幼稚園"), JobType.KINDERGARTEN),
    (("医療事務", "事務"), JobType.MEDICAL_CLERK),
]


class JobTypeClassifier:
    """Ordered keyword rules; `classify` returns the first match or None."""

    def __init__(self, rules: Optional[List[Rule]] = None):
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)

    def classify(self, text: Optional[str]) -> Optional[JobType]:
        if not text:
            return None
        for keywords, job_type in self.rules:
            if any(keyword in text for keyword in keywords):
                return job_type
        return None


default_classifier = JobTypeClassifier()


def classify_job_type(text: Optional[str]) -> Optional[JobType]:
    """Classify with the default rule table."""
    return default_classifier.classify(text)
