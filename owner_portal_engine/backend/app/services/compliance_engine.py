# backend/app/services/compliance_engine.py
from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional, Sequence

from ..clients.base import ComplianceProvider
from ..config import Settings, settings as default_settings
from ..correlation import correlation_scope
from ..domain.compliance import (
    ComplianceRecord,
    ComplianceState,
    DataSource,
    NormalizedSubmission,
    compute_metrics,
    compute_record,
    find_matching_reservation,
    flags_for,
    normalize_submission,
    sort_by_priority,
)
from ..domain.compliance.metrics import FLAG_COMPLIANT, FLAG_DUE_SOON, FLAG_ERROR, FLAG_OVERDUE
from ..domain.errors import UpstreamUnavailable, ValidationError
from ..domain.outcomes import settle_all
from ..domain.periods import parse_day, utc_today
from ..domain.reservations import SOURCE_SECONDARY
from .record_store import COMPLIANCE_SUBMISSIONS, RecordStore, known_properties, latest_local_submission
from .reservation_reconciler import STATUS_ERROR, ReservationReconciler, convert_rows

log = logging.getLogger("owner_portal.compliance")

NO_CODE_WARNING = "No reservation code available, using basic validation only; manual processing will be required"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    reservation_code: Optional[str] = None
    submission: Optional[NormalizedSubmission] = None
    upstream_reply: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "reservation_code": self.reservation_code,
            "validation_data": self.submission.to_dict() if self.submission else None,
            "upstream_reply": self.upstream_reply,
        }


@dataclass(frozen=True)
class SubmissionResult:
    success: bool
    submission_id: Optional[str] = None
    reservation_code: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    submitted_at: Optional[str] = None
    recorded_locally: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BulkSubmissionResult:
    results: list[SubmissionResult]

    @property
    def sent(self) -> int:
        return sum(1 for r in self.results if r.success and not r.recorded_locally)

    @property
    def local(self) -> int:
        return sum(1 for r in self.results if r.success and r.recorded_locally)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "summary": {"total": len(self.results), "sent": self.sent, "local": self.local, "failed": self.failed},
        }


@dataclass(frozen=True)
class DashboardRow:
    property_id: str
    property_name: str
    status: str
    color: str
    last_submission: Optional[str]
    next_due: Optional[str]
    days_until_due: Optional[int]
    data_source: str
    total_reservations: int = 0
    pending_submissions: int = 0
    overdue_submissions: int = 0
    compliance_rate: int = 0
    flags: list[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def primary_flag(self) -> str:
        return self.flags[0] if self.flags else FLAG_ERROR

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ComplianceDashboard:
    rows: list[DashboardRow]

    def summary(self) -> dict[str, int]:
        return {
            "total_properties": len(self.rows),
            "overdue": sum(1 for r in self.rows if FLAG_OVERDUE in r.flags),
            "due_soon": sum(1 for r in self.rows if FLAG_DUE_SOON in r.flags),
            "compliant": sum(1 for r in self.rows if FLAG_COMPLIANT in r.flags),
            "errors": sum(1 for r in self.rows if FLAG_ERROR in r.flags),
        }

    def to_dict(self) -> dict[str, Any]:
        return {"data": [r.to_dict() for r in self.rows], "summary": self.summary()}


def _error_row(property_id: str, name: str, message: str) -> DashboardRow:
    return DashboardRow(
        property_id=str(property_id),
        property_name=name,
        status="error",
        color=ComplianceState.UNKNOWN.color,
        last_submission=None,
        next_due=None,
        days_until_due=None,
        data_source=DataSource.UNAVAILABLE.value,
        flags=[FLAG_ERROR],
        error=message,
    )


class ComplianceEngine:
    """
    Guest-registration compliance per property: status, validation, submission with
    local fallback, and the cross-property dashboard.
    """

    def __init__(
        self,
        compliance: ComplianceProvider,
        store: RecordStore,
        reconciler: ReservationReconciler,
        *,
        settings: Optional[Settings] = None,
        today: Callable[[], date] = utc_today,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.compliance = compliance
        self.store = store
        self.reconciler = reconciler
        self.settings = settings or default_settings
        self.today = today
        self.now = now

    # -------------------- Status --------------------

    async def status(self, property_id: str) -> ComplianceRecord:
        pid = str(property_id)
        today = self.today()
        error: Optional[str] = None

        last: Optional[date] = None
        source = DataSource.UNAVAILABLE
        try:
            last = parse_day(await self.compliance.get_last_submission_date(pid))
            if last is not None:
                source = DataSource.PRIMARY
        except Exception as e:
            error = str(e) or type(e).__name__
            log.warning("last submission date unavailable", extra={"property_id": pid}, exc_info=e)

        if last is None:
            local = await latest_local_submission(self.store, pid)
            if local is not None:
                last = parse_day(local.get("submitted_at"))
                if last is not None:
                    source = DataSource.LOCAL

        return compute_record(
            pid,
            last,
            today=today,
            data_source=source,
            grace_days=self.settings.compliance_grace_days,
            due_soon_days=self.settings.compliance_due_soon_days,
            error=error,
        )

    # -------------------- Validation --------------------

    async def _lookup_code(self, pid: str, sub: NormalizedSubmission, warnings: list[str]) -> Optional[str]:
        today = self.today()
        start = (today - timedelta(days=self.settings.compliance_lookback_days)).isoformat()
        try:
            rows = await self.compliance.get_reservations(pid, start, today.isoformat())
        except Exception as e:
            log.warning("reservation history unavailable for code lookup", extra={"property_id": pid}, exc_info=e)
            warnings.append("Reservation history unavailable, reservation code could not be looked up")
            return None

        history = convert_rows(rows, source=SOURCE_SECONDARY, property_id=pid, cfg=self.settings, warnings=[])
        match = find_matching_reservation(history, sub)
        if match is None:
            return None
        log.info("matched reservation code", extra={"property_id": pid, "reservation_code": match.confirmation_code})
        return match.confirmation_code

    async def validate(self, property_id: str, reservation_data: Mapping[str, Any]) -> ValidationResult:
        pid = str(property_id)
        with correlation_scope():
            try:
                sub = normalize_submission(reservation_data)
            except ValidationError as e:
                return ValidationResult(is_valid=False, errors=e.errors)

            warnings: list[str] = []
            code = sub.reservation_code or await self._lookup_code(pid, sub, warnings)
            if not code:
                warnings.append(NO_CODE_WARNING)
                return ValidationResult(is_valid=True, warnings=warnings, submission=sub)

            try:
                reply = await self.compliance.validate_submission(pid, code)
            except Exception as e:
                log.warning(
                    "upstream validation unavailable",
                    extra={"property_id": pid, "reservation_code": code},
                    exc_info=e,
                )
                warnings.append(f"Compliance provider unavailable for reservation {code}, using basic validation")
                return ValidationResult(is_valid=True, warnings=warnings, reservation_code=code, submission=sub)

            if not reply.succeeded:
                warnings.append(f"Reservation code {code} not found upstream, but basic validation passed")
            return ValidationResult(
                is_valid=True,
                warnings=warnings,
                reservation_code=code,
                submission=sub,
                upstream_reply=reply.model_dump(by_alias=True),
            )

    # -------------------- Submission --------------------

    async def _record(self, sid: str, pid: str, code: Optional[str], submitted_at: str, source: str, sub: NormalizedSubmission) -> None:
        await self.store.put(
            COMPLIANCE_SUBMISSIONS,
            sid,
            {
                "id": sid,
                "property_id": pid,
                "reservation_code": code,
                "submitted_at": submitted_at,
                "source": source,
                "submission": sub.to_dict(),
            },
        )

    async def send(self, property_id: str, reservation_data: Mapping[str, Any]) -> SubmissionResult:
        pid = str(property_id)
        with correlation_scope():
            v = await self.validate(pid, reservation_data)
            if not v.is_valid:
                return SubmissionResult(success=False, errors=list(v.errors))

            code = v.reservation_code
            warnings = list(v.warnings)
            now = self.now()
            submitted_at = now.isoformat()

            if code:
                try:
                    reply = await self.compliance.send_submission(pid, code)
                except Exception as e:
                    log.warning(
                        "upstream submission failed, recording locally",
                        extra={"property_id": pid, "reservation_code": code},
                        exc_info=e,
                    )
                    fallback = "Compliance provider unavailable, recorded locally"
                else:
                    if reply.succeeded:
                        sid = str(reply.submission_id or reply.id or code)
                        try:
                            await self._record(sid, pid, code, submitted_at, DataSource.PRIMARY.value, v.submission)
                        except Exception as e:
                            log.warning("submission audit record not written", extra={"property_id": pid}, exc_info=e)
                            warnings.append("Submission accepted upstream but the local audit record could not be written")
                        return SubmissionResult(
                            success=True,
                            submission_id=sid,
                            reservation_code=code,
                            warnings=warnings,
                            submitted_at=submitted_at,
                        )
                    fallback = "Compliance provider rejected the submission, recorded locally"
            else:
                fallback = "No reservation code, recorded locally"

            sid = f"local-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:8]}"
            try:
                await self._record(sid, pid, code, submitted_at, DataSource.LOCAL.value, v.submission)
            except Exception as e:
                log.error("local submission record failed", extra={"property_id": pid}, exc_info=e)
                return SubmissionResult(
                    success=False,
                    reservation_code=code,
                    warnings=warnings,
                    errors=[f"Submission could not be recorded locally: {e}"],
                )

            warnings.append(fallback)
            log.info("submission recorded locally", extra={"property_id": pid, "submission_id": sid})
            return SubmissionResult(
                success=True,
                submission_id=sid,
                reservation_code=code,
                warnings=warnings,
                submitted_at=submitted_at,
                recorded_locally=True,
            )

    async def send_bulk(self, property_id: str, items: Sequence[Mapping[str, Any]]) -> BulkSubmissionResult:
        with correlation_scope():
            items = list(items)
            outcomes = await settle_all(range(len(items)), lambda i: self.send(property_id, items[i]))
            results = [
                o.value if o.ok else SubmissionResult(success=False, errors=[f"Submission failed: {o.message}"])
                for o in outcomes
            ]
            bulk = BulkSubmissionResult(results=results)
            log.info(
                "bulk submission: %d sent, %d local, %d failed",
                bulk.sent,
                bulk.local,
                bulk.failed,
                extra={"property_id": str(property_id)},
            )
            return bulk

    # -------------------- Dashboard --------------------

    async def _dashboard_row(self, prop: Mapping[str, Any]) -> DashboardRow:
        pid = str(prop["id"])
        name = prop.get("name") or f"Property {pid}"
        today = self.today()

        record = await self.status(pid)

        start = (today - timedelta(days=self.settings.compliance_lookback_days)).isoformat()
        rows, _warnings, status, error = await self.reconciler.collect(pid, start, today.isoformat())
        if status == STATUS_ERROR:
            raise UpstreamUnavailable("reservations", "collect", error or "")

        metrics = compute_metrics(
            rows,
            today=today,
            window_days=self.settings.compliance_metrics_window_days,
            grace_days=self.settings.compliance_grace_days,
        )
        flags = flags_for(
            record,
            metrics,
            low_compliance_threshold=self.settings.low_compliance_threshold,
        )
        return DashboardRow(
            property_id=pid,
            property_name=name,
            status="error" if record.state == ComplianceState.UNKNOWN else record.state.value,
            color=record.color,
            last_submission=record.last_submission.isoformat() if record.last_submission else None,
            next_due=record.next_due.isoformat() if record.next_due else None,
            days_until_due=record.days_until_due,
            data_source=record.data_source.value,
            total_reservations=metrics.total_reservations,
            pending_submissions=metrics.pending_submissions,
            overdue_submissions=metrics.overdue_submissions,
            compliance_rate=metrics.compliance_rate,
            flags=flags,
            error=record.error if record.state == ComplianceState.UNKNOWN else None,
        )

    async def dashboard(self) -> ComplianceDashboard:
        with correlation_scope():
            props = await known_properties(self.store)
            outcomes = await settle_all(props, self._dashboard_row)

            rows: list[DashboardRow] = []
            for prop, outcome in zip(props, outcomes):
                if outcome.ok:
                    rows.append(outcome.value)
                    continue
                pid = str(prop["id"])
                log.warning("dashboard row failed", extra={"property_id": pid}, exc_info=outcome.error)
                rows.append(_error_row(pid, prop.get("name") or f"Property {pid}", outcome.message))

            return ComplianceDashboard(rows=sort_by_priority(rows, lambda r: r.primary_flag))
