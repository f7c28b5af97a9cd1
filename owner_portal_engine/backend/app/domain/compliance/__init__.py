# backend/app/domain/compliance/__init__.py
from .status import ComplianceRecord, ComplianceState, DataSource, classify, compute_record
from .validation import NormalizedSubmission, find_matching_reservation, normalize_submission
from .metrics import ComplianceMetrics, compute_metrics, flags_for, sort_by_priority

__all__ = [
    "ComplianceRecord",
    "ComplianceState",
    "DataSource",
    "classify",
    "compute_record",
    "NormalizedSubmission",
    "normalize_submission",
    "find_matching_reservation",
    "ComplianceMetrics",
    "compute_metrics",
    "flags_for",
    "sort_by_priority",
]
