# Tourism Block SLA Verification Engine
# Classifies submitted evidence against one agreement and returns a verdict.
#
# Dispatch is by (agreement category, code of the first evidence entry):
#   service / SAS001      → airport shuttle decision table
#   service / SSA001      → sauna failure scan
#   room_design / RSI001  → room size threshold
#   bed                   → bed count + bed point totals
#   view, interior, ...   → every required item must be matched
#
# Penalty selection by tier:
#   tier 0: any failure of a non-shuttle agreement, shuttle no-show or
#            excessive driver wait
#   tier 1: shuttle driver late, within the long wait time
#   tier 2: shuttle driver later than the long wait time
#
# The engine is pure: no world-state access, no clock, no network.

import logging
from collections.abc import Mapping
from types import MappingProxyType

from errors import CodeMismatchError, InvalidStateError, UnsupportedCategoryError
from models import (
    SUPPORTED_CATEGORIES,
    Agreement,
    AgreementCategory,
    AirportShuttleEvidence,
    AirportShuttleTerm,
    EvaluationResult,
    ItemCode,
    RoomSizeEvidence,
    RoomSizeTerm,
    SaunaEvidence,
    SaunaStatus,
    SaunaTerm,
    ShuttleStatus,
    minutes_between,
)

log = logging.getLogger("tourism_block.verification")

NO_DATA_REASON = "no data to evaluate"
DRIVER_DID_NOT_COME_REASON = "driver did not come to pick up the passenger"
DRIVER_LATE_REASON = "the driver came to pick up the passenger late"
SAUNA_FAILURES_REASON = "sauna service failed too many times"
ROOM_TOO_SMALL_REASON = "room is smaller than agreed"
BEDS_REASON = "beds do not meet the agreed number or kind"
ITEM_MISSING_REASON = "agreed item {code} was not provided"


# ── Lookup Tables ─────────────────────────────────────────────────────

# Ordinal level of each view; a better view satisfies a worse one.
VIEW_LEVELS = MappingProxyType({
    ItemCode.VIEW_MOUNTAIN.value: 0,
    ItemCode.VIEW_CITY.value: 1,
    ItemCode.VIEW_GARDEN.value: 2,
    ItemCode.VIEW_POOL.value: 3,
    ItemCode.VIEW_RIVER.value: 4,
    ItemCode.VIEW_SEA.value: 5,
})

BED_POINTS = MappingProxyType({
    ItemCode.BED_TWIN.value: 1,
    ItemCode.BED_QUEEN.value: 10,
    ItemCode.BED_KING.value: 100,
})

NON_TERMINAL_SHUTTLE_STATUSES = frozenset({
    ShuttleStatus.DRIVER_WAITING.value,
    ShuttleStatus.IN_SERVICE.value,
})


class VerificationEngine:
    """Rule evaluators for each supported agreement category."""

    def __init__(self, view_levels: Mapping = VIEW_LEVELS, bed_points: Mapping = BED_POINTS):
        self.view_levels = MappingProxyType(dict(view_levels))
        self.bed_points = MappingProxyType(dict(bed_points))

    def verify_sla(self, agreement: Agreement, evidence: list) -> EvaluationResult:
        """Verify an agreement against the submitted evidence."""
        if agreement.category not in SUPPORTED_CATEGORIES:
            raise UnsupportedCategoryError(
                f"agreement category {agreement.category} has not supported yet"
            )

        if not evidence:
            return EvaluationResult(
                satisfied=False,
                penalty_rule=self._default_penalty(agreement),
                failure_reason=NO_DATA_REASON,
            )

        category = agreement.category
        code = evidence[0].code
        if category == AgreementCategory.SERVICE:
            if code == ItemCode.SERVICE_AIRPORT_SHUTTLE:
                result = self.verify_airport_shuttle(agreement, evidence[0])
            elif code == ItemCode.SERVICE_SAUNA:
                result = self.verify_sauna(agreement, evidence[0])
            else:
                raise CodeMismatchError(
                    f"agreement item code {code} in category {category} as not supported yet"
                )
        elif category == AgreementCategory.ROOM_DESIGN:
            result = self.verify_room_size(agreement, evidence[0])
        elif category == AgreementCategory.BED:
            result = self.verify_beds(agreement, evidence)
        else:
            result = self.verify_items(agreement, evidence)

        log.info("SLA VERIFIED agreement=%s category=%s code=%s satisfied=%s",
                 agreement.agreement_id, category, code, result.satisfied)
        return result

    # ── Service: Airport Shuttle ──────────────────────────────────────

    def verify_airport_shuttle(self, agreement: Agreement,
                               data: AirportShuttleEvidence) -> EvaluationResult:
        term = self._term(agreement, ItemCode.SERVICE_AIRPORT_SHUTTLE.value, AirportShuttleTerm)
        status = data.status

        if status in NON_TERMINAL_SHUTTLE_STATUSES:
            raise InvalidStateError(
                f"can not verify airport shuttle agreement for status: {status}"
            )

        # Customer-initiated cancellation is not a vendor failure
        if status == ShuttleStatus.CANCELED:
            return EvaluationResult(satisfied=True)

        if status == ShuttleStatus.NOT_SERVED:
            return EvaluationResult(
                satisfied=False,
                penalty_rule=agreement.penalty_for_tier(0),
                failure_reason=DRIVER_DID_NOT_COME_REASON,
            )

        if status == ShuttleStatus.WAITING_TIME_EXCEEDED:
            pick_up = data.pick_up_time
            notified = data.driver_notify_customer_do_not_show_up_at
            arrived = data.driver_arrive_at
            customer_no_show = (
                pick_up is not None and notified is not None and arrived is not None
                and minutes_between(notified, pick_up) > term.driver_max_wait_time
                and minutes_between(arrived, pick_up) <= term.customer_short_wait_time
            )
            if customer_no_show:
                return EvaluationResult(satisfied=True)
            return EvaluationResult(
                satisfied=False,
                penalty_rule=agreement.penalty_for_tier(0),
                failure_reason=DRIVER_LATE_REASON,
            )

        if data.pick_up_time is None or data.driver_arrive_at is None:
            raise InvalidStateError(
                f"airport shuttle evidence with status {status or 'completed'} "
                "needs pickUpTime and driverArriveAt"
            )
        delay = minutes_between(data.driver_arrive_at, data.pick_up_time)
        if delay <= term.customer_short_wait_time:
            return EvaluationResult(satisfied=True)
        tier = 1 if delay <= term.customer_long_wait_time else 2
        return EvaluationResult(
            satisfied=False,
            penalty_rule=agreement.penalty_for_tier(tier),
            failure_reason=DRIVER_LATE_REASON,
        )

    # ── Service: Sauna ────────────────────────────────────────────────

    def verify_sauna(self, agreement: Agreement, data: SaunaEvidence) -> EvaluationResult:
        """Count failures spaced at least MinTimeBetween2Failures apart.

        The previous-failure anchor moves to every failure, whether or not
        the gap qualified.
        """
        term = self._term(agreement, ItemCode.SERVICE_SAUNA.value, SaunaTerm)
        requests = sorted(data.sauna_requests, key=lambda r: r.request_at)

        previous_failure = None
        failures = 0
        for req in requests:
            if req.status == SaunaStatus.FAIL:
                if (previous_failure is not None
                        and minutes_between(req.request_at, previous_failure.request_at)
                        >= term.min_time_between_2_failures):
                    failures += 1
                previous_failure = req

            if failures >= term.max_failures:
                return EvaluationResult(
                    satisfied=False,
                    penalty_rule=self._default_penalty(agreement),
                    failure_reason=SAUNA_FAILURES_REASON,
                )

        return EvaluationResult(satisfied=True)

    # ── Room Design: Size ─────────────────────────────────────────────

    def verify_room_size(self, agreement: Agreement, data) -> EvaluationResult:
        if data.code != ItemCode.ROOM_DESIGN_SIZE or not isinstance(data, RoomSizeEvidence):
            raise CodeMismatchError(f"evaluation data code {data.code} is not room size code")
        term = self._term(agreement, ItemCode.ROOM_DESIGN_SIZE.value, RoomSizeTerm)
        if data.value >= term.value:
            return EvaluationResult(satisfied=True)
        return self._unsatisfied(agreement, ROOM_TOO_SMALL_REASON)

    # ── Bed ───────────────────────────────────────────────────────────

    def verify_beds(self, agreement: Agreement, evidence: list) -> EvaluationResult:
        """Provided beds must match the agreed count and the agreed comfort points."""
        required_beds = sum(getattr(i, "quantity", 0) for i in agreement.items)
        required_points = sum(self.bed_points.get(i.code, 0) for i in agreement.items)
        provided_beds = sum(getattr(e, "quantity", 0) for e in evidence)
        provided_points = sum(self.bed_points.get(e.code, 0) for e in evidence)

        if provided_beds >= required_beds and provided_points >= required_points:
            return EvaluationResult(satisfied=True)
        return self._unsatisfied(agreement, BEDS_REASON)

    # ── View & Facilities ─────────────────────────────────────────────

    def verify_items(self, agreement: Agreement, evidence: list) -> EvaluationResult:
        """Every agreed item needs at least one matching evidence entry."""
        for required in agreement.items:
            if not any(self._matches(agreement.category, required, e) for e in evidence):
                return self._unsatisfied(
                    agreement, ITEM_MISSING_REASON.format(code=required.code)
                )
        return EvaluationResult(satisfied=True)

    def _matches(self, category: str, required, provided) -> bool:
        if category == AgreementCategory.VIEW:
            return self.view_levels.get(provided.code, 0) >= self.view_levels.get(required.code, 0)
        required_qty = getattr(required, "quantity", 0)
        return provided.code == required.code and (
            required_qty == 0 or getattr(provided, "quantity", 0) >= required_qty
        )

    # ── Helpers ───────────────────────────────────────────────────────

    @staticmethod
    def _term(agreement: Agreement, code: str, kind: type):
        term = agreement.term_for_code(code)
        if not isinstance(term, kind):
            raise CodeMismatchError(
                f"agreement {agreement.agreement_id} has no {code} term to verify against"
            )
        return term

    @staticmethod
    def _default_penalty(agreement: Agreement):
        return agreement.penalty_for_tier(0) if agreement.has_penalty_rule else None

    def _unsatisfied(self, agreement: Agreement, reason: str) -> EvaluationResult:
        return EvaluationResult(
            satisfied=False,
            penalty_rule=self._default_penalty(agreement),
            failure_reason=reason,
        )


# ── Singleton ─────────────────────────────────────────────────────────

_verification_engine = None


def get_verification_engine() -> VerificationEngine:
    global _verification_engine
    if _verification_engine is None:
        _verification_engine = VerificationEngine()
    return _verification_engine
