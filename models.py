# Tourism Block Data Model
# Services, agreements, evaluation evidence and audit records, plus the
# codecs used for world-state records and transaction arguments.
#
# Persisted records are JSON objects with camelCase field names. Agreement
# items, penalty rules and evaluation evidence travel as base64-encoded JSON
# arrays in transaction arguments.
#
# Agreement items and evidence are tagged unions keyed by (category, code):
#   service / SAS001      → AirportShuttleTerm / AirportShuttleEvidence
#   service / SSA001      → SaunaTerm          / SaunaEvidence
#   room_design / RSI001  → RoomSizeTerm       / RoomSizeEvidence
#   everything else       → FacilityTerm       / FacilityEvidence

import base64
import binascii
import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from errors import DecodeError, NotFoundError, PenaltyTierError

DOC_TYPE_SERVICE = "Service"
DOC_TYPE_EVALUATION = "Evaluation"


# ── Categories & Codes ────────────────────────────────────────────────

class AgreementCategory(str, Enum):
    VIEW = "view"
    SERVICE = "service"
    INTERIOR = "interior"
    ROOM_DESIGN = "room_design"
    OUTDOOR = "outdoor"
    BED = "bed"
    FACILITY = "facility"      # Deprecated, never verified


SUPPORTED_CATEGORIES = frozenset({
    AgreementCategory.VIEW.value,
    AgreementCategory.SERVICE.value,
    AgreementCategory.INTERIOR.value,
    AgreementCategory.ROOM_DESIGN.value,
    AgreementCategory.OUTDOOR.value,
    AgreementCategory.BED.value,
})


class ItemCode(str, Enum):
    VIEW_SEA = "V001"
    VIEW_RIVER = "V002"
    VIEW_POOL = "V003"
    VIEW_GARDEN = "V004"
    VIEW_CITY = "V005"
    VIEW_MOUNTAIN = "V006"

    BED_TWIN = "BE001"
    BED_QUEEN = "BE002"
    BED_KING = "BE003"

    INTERIOR_BATHTUB = "IBA001"
    INTERIOR_FLAT_SCREEN_TV = "ITV001"

    SERVICE_SAUNA = "SSA001"
    SERVICE_AIRPORT_SHUTTLE = "SAS001"

    OUTDOOR_PATIO = "OPA001"
    OUTDOOR_BALCONY = "OBA001"

    ROOM_DESIGN_SIZE = "RSI001"


class PenaltyRuleType(str, Enum):
    DISCOUNT = "discount"
    UPGRADE_LEVEL = "upgrade_level"


class ShuttleStatus(str, Enum):
    CONFIRMED = "confirmed"
    DRIVER_WAITING = "driver_waiting"
    IN_SERVICE = "in_service"
    COMPLETED = "completed"
    NOT_SERVED = "not_served"
    WAITING_TIME_EXCEEDED = "waiting_time_exceeded"
    CANCELED = "canceled"


class SaunaStatus(str, Enum):
    SUCCESS = "success"
    FAIL = "fail"


# ── Field Helpers ─────────────────────────────────────────────────────

def _require(raw: dict, name: str, stage: str):
    value = raw.get(name)
    if value is None:
        raise DecodeError(stage, f"missing field '{name}'")
    return value


def _as_str(value, name: str, stage: str) -> str:
    if not isinstance(value, str):
        raise DecodeError(stage, f"field '{name}' must be a string, got {value!r}")
    return value


def _as_int(value, name: str, stage: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(stage, f"field '{name}' must be an integer, got {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise DecodeError(stage, f"field '{name}' must be an integer, got {value!r}")
    return int(value)


def _as_number(value, name: str, stage: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(stage, f"field '{name}' must be numeric, got {value!r}")
    return float(value)


def _int_field(raw: dict, name: str, stage: str) -> int:
    value = raw.get(name)
    return 0 if value is None else _as_int(value, name, stage)


def _as_object(raw, stage: str) -> dict:
    if not isinstance(raw, dict):
        raise DecodeError(stage, f"expected a JSON object, got {type(raw).__name__}")
    return raw


# ── Timestamps ────────────────────────────────────────────────────────

_RFC3339_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})?$"
)


def parse_time(value, stage: str = "evaluation data") -> datetime:
    """Parse an RFC 3339 timestamp into an aware datetime (UTC if no offset)."""
    if not isinstance(value, str):
        raise DecodeError(stage, f"timestamp must be a string, got {value!r}")
    m = _RFC3339_RE.match(value.strip())
    if not m:
        raise DecodeError(stage, f"invalid timestamp {value!r}")
    date, clock, frac, zone = m.groups()
    # datetime only keeps microseconds
    frac = (frac or "0")[:6].ljust(6, "0")
    if zone is None or zone.upper() == "Z":
        zone = "+00:00"
    try:
        return datetime.fromisoformat(f"{date}T{clock}.{frac}{zone}")
    except ValueError as e:
        raise DecodeError(stage, f"invalid timestamp {value!r}: {e}") from e


def format_time(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _optional_time(raw: dict, name: str, stage: str) -> Optional[datetime]:
    value = raw.get(name)
    if value is None or value == "":
        return None
    dt = parse_time(value, stage)
    # Zero time sent by clients that cannot omit the field
    if dt.year == 1:
        return None
    return dt


def minutes_between(later: datetime, earlier: datetime) -> float:
    return (later - earlier).total_seconds() / 60.0


# ── Penalty Rules ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class PenaltyRule:
    """A compensation the vendor owes when a verdict selects its tier."""
    type: str
    discount_percent: float = 0.0
    tier: int = 0

    def to_dict(self) -> dict:
        d = {"tier": self.tier, "type": self.type}
        if self.discount_percent:
            d["discountPercent"] = self.discount_percent
        return d

    @classmethod
    def from_dict(cls, raw, position: int = 0, stage: str = "penalty rules") -> "PenaltyRule":
        raw = _as_object(raw, stage)
        rule_type = _as_str(_require(raw, "type", stage), "type", stage)
        if rule_type not in {t.value for t in PenaltyRuleType}:
            raise DecodeError(stage, f"unknown penalty rule type {rule_type!r}")
        discount = raw.get("discountPercent")
        tier = raw.get("tier")
        return cls(
            type=rule_type,
            discount_percent=0.0 if discount is None else _as_number(discount, "discountPercent", stage),
            tier=position if tier is None else _as_int(tier, "tier", stage),
        )


def parse_penalty_rules(raw_rules, stage: str = "penalty rules") -> list[PenaltyRule]:
    """Build penalty rules; rules without an explicit tier take their position."""
    if raw_rules is None:
        return []
    if not isinstance(raw_rules, list):
        raise DecodeError(stage, "expected a JSON array")
    rules = [PenaltyRule.from_dict(r, i, stage) for i, r in enumerate(raw_rules)]
    tiers = [r.tier for r in rules]
    if len(set(tiers)) != len(tiers):
        raise DecodeError(stage, f"duplicate penalty tiers {sorted(tiers)}")
    return rules


# ── Agreement Terms ───────────────────────────────────────────────────

@dataclass(frozen=True)
class FacilityTerm:
    """View, bed, interior or outdoor requirement: a code and a minimum count."""
    code: str
    quantity: int = 0

    def to_dict(self) -> dict:
        d = {"code": self.code}
        if self.quantity:
            d["quantity"] = self.quantity
        return d

    @classmethod
    def from_dict(cls, raw: dict, stage: str) -> "FacilityTerm":
        return cls(code=raw["code"], quantity=_int_field(raw, "quantity", stage))


@dataclass(frozen=True)
class AirportShuttleTerm:
    """Wait-time thresholds in minutes."""
    code: str
    driver_max_wait_time: int = 0
    customer_short_wait_time: int = 0
    customer_long_wait_time: int = 0

    def to_dict(self) -> dict:
        d = {"code": self.code}
        if self.driver_max_wait_time:
            d["driverMaxWaitTime"] = self.driver_max_wait_time
        if self.customer_short_wait_time:
            d["customerShortWaitTime"] = self.customer_short_wait_time
        if self.customer_long_wait_time:
            d["customerLongWaitTime"] = self.customer_long_wait_time
        return d

    @classmethod
    def from_dict(cls, raw: dict, stage: str) -> "AirportShuttleTerm":
        return cls(
            code=raw["code"],
            driver_max_wait_time=_int_field(raw, "driverMaxWaitTime", stage),
            customer_short_wait_time=_int_field(raw, "customerShortWaitTime", stage),
            customer_long_wait_time=_int_field(raw, "customerLongWaitTime", stage),
        )


@dataclass(frozen=True)
class SaunaTerm:
    """Tolerated failures and the minimum gap (minutes) for a failure to count."""
    code: str
    max_failures: int = 0
    min_time_between_2_failures: int = 0

    def to_dict(self) -> dict:
        d = {"code": self.code}
        if self.max_failures:
            d["maxFailures"] = self.max_failures
        if self.min_time_between_2_failures:
            d["minTimeBetween2Failures"] = self.min_time_between_2_failures
        return d

    @classmethod
    def from_dict(cls, raw: dict, stage: str) -> "SaunaTerm":
        return cls(
            code=raw["code"],
            max_failures=_int_field(raw, "maxFailures", stage),
            min_time_between_2_failures=_int_field(raw, "minTimeBetween2Failures", stage),
        )


@dataclass(frozen=True)
class RoomSizeTerm:
    code: str
    value: float

    def to_dict(self) -> dict:
        return {"code": self.code, "value": self.value}

    @classmethod
    def from_dict(cls, raw: dict, stage: str) -> "RoomSizeTerm":
        return cls(code=raw["code"], value=_as_number(_require(raw, "value", stage), "value", stage))


AgreementTerm = Union[FacilityTerm, AirportShuttleTerm, SaunaTerm, RoomSizeTerm]


# ── Evaluation Evidence ───────────────────────────────────────────────

@dataclass(frozen=True)
class FacilityEvidence:
    code: str
    quantity: int = 0
    name: str = ""

    def to_dict(self) -> dict:
        d = {"code": self.code}
        if self.name:
            d["name"] = self.name
        if self.quantity:
            d["quantity"] = self.quantity
        return d

    @classmethod
    def from_dict(cls, raw: dict, stage: str) -> "FacilityEvidence":
        name = raw.get("name")
        return cls(
            code=raw["code"],
            quantity=_int_field(raw, "quantity", stage),
            name="" if name is None else _as_str(name, "name", stage),
        )


_SHUTTLE_TIMESTAMPS = (
    ("pick_up_time", "pickUpTime"),
    ("driver_arrive_at", "driverArriveAt"),
    ("customer_check_in_at", "customerCheckInAt"),
    ("last_updated_arrival_time_by_customer_at", "lastUpdatedArrivalTimeByCustomerAt"),
    ("driver_notify_customer_do_not_show_up_at", "driverNotifyCustomerDoNotShowUpAt"),
)


@dataclass(frozen=True)
class AirportShuttleEvidence:
    code: str
    status: str
    pick_up_time: Optional[datetime] = None
    driver_arrive_at: Optional[datetime] = None
    customer_check_in_at: Optional[datetime] = None
    last_updated_arrival_time_by_customer_at: Optional[datetime] = None
    driver_notify_customer_do_not_show_up_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        d = {"code": self.code, "status": self.status}
        for attr, key in _SHUTTLE_TIMESTAMPS:
            value = getattr(self, attr)
            if value is not None:
                d[key] = format_time(value)
        return d

    @classmethod
    def from_dict(cls, raw: dict, stage: str) -> "AirportShuttleEvidence":
        status = raw.get("status")
        kwargs = {attr: _optional_time(raw, key, stage) for attr, key in _SHUTTLE_TIMESTAMPS}
        return cls(
            code=raw["code"],
            status="" if status is None else _as_str(status, "status", stage),
            **kwargs,
        )


@dataclass(frozen=True)
class SaunaRequest:
    request_at: datetime
    status: str

    def to_dict(self) -> dict:
        return {"requestAt": format_time(self.request_at), "status": self.status}

    @classmethod
    def from_dict(cls, raw, stage: str) -> "SaunaRequest":
        raw = _as_object(raw, stage)
        return cls(
            request_at=parse_time(_require(raw, "requestAt", stage), stage),
            status=_as_str(_require(raw, "status", stage), "status", stage),
        )


@dataclass(frozen=True)
class SaunaEvidence:
    code: str
    sauna_requests: tuple = ()

    def to_dict(self) -> dict:
        d = {"code": self.code}
        if self.sauna_requests:
            d["saunaRequests"] = [r.to_dict() for r in self.sauna_requests]
        return d

    @classmethod
    def from_dict(cls, raw: dict, stage: str) -> "SaunaEvidence":
        requests = raw.get("saunaRequests") or []
        if not isinstance(requests, list):
            raise DecodeError(stage, "field 'saunaRequests' must be an array")
        return cls(
            code=raw["code"],
            sauna_requests=tuple(SaunaRequest.from_dict(r, stage) for r in requests),
        )


@dataclass(frozen=True)
class RoomSizeEvidence:
    code: str
    value: float

    def to_dict(self) -> dict:
        return {"code": self.code, "value": self.value}

    @classmethod
    def from_dict(cls, raw: dict, stage: str) -> "RoomSizeEvidence":
        return cls(code=raw["code"], value=_as_number(_require(raw, "value", stage), "value", stage))


Evidence = Union[FacilityEvidence, AirportShuttleEvidence, SaunaEvidence, RoomSizeEvidence]


# ── Tagged Union Dispatch ─────────────────────────────────────────────

_SPECIAL_KINDS = {
    (AgreementCategory.SERVICE.value, ItemCode.SERVICE_AIRPORT_SHUTTLE.value): "airport_shuttle",
    (AgreementCategory.SERVICE.value, ItemCode.SERVICE_SAUNA.value): "sauna",
    (AgreementCategory.ROOM_DESIGN.value, ItemCode.ROOM_DESIGN_SIZE.value): "room_size",
}

TERM_TYPES = {
    "facility": FacilityTerm,
    "airport_shuttle": AirportShuttleTerm,
    "sauna": SaunaTerm,
    "room_size": RoomSizeTerm,
}

EVIDENCE_TYPES = {
    "facility": FacilityEvidence,
    "airport_shuttle": AirportShuttleEvidence,
    "sauna": SaunaEvidence,
    "room_size": RoomSizeEvidence,
}


def item_kind(category: str, code: str) -> str:
    return _SPECIAL_KINDS.get((category, code), "facility")


def _coded_object(raw, stage: str) -> tuple[dict, str]:
    raw = _as_object(raw, stage)
    return raw, _as_str(_require(raw, "code", stage), "code", stage)


def term_from_dict(category: str, raw, stage: str = "agreement items") -> AgreementTerm:
    raw, code = _coded_object(raw, stage)
    return TERM_TYPES[item_kind(category, code)].from_dict(raw, stage)


def evidence_from_dict(category: str, raw, stage: str = "evaluation data") -> Evidence:
    raw, code = _coded_object(raw, stage)
    return EVIDENCE_TYPES[item_kind(category, code)].from_dict(raw, stage)


def parse_agreement_items(category: str, raw_items, stage: str = "agreement items") -> list:
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        raise DecodeError(stage, "expected a JSON array")
    return [term_from_dict(category, r, stage) for r in raw_items]


def parse_evaluation_data(category: str, raw_data, stage: str = "evaluation data") -> list:
    if raw_data is None:
        return []
    if not isinstance(raw_data, list):
        raise DecodeError(stage, "expected a JSON array")
    return [evidence_from_dict(category, r, stage) for r in raw_data]


# ── Transaction Argument Codec ────────────────────────────────────────

def decode_b64_json(payload: str, stage: str):
    """Decode a base64 transaction argument holding JSON."""
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(stage, f"can not decode from base64: {e}") from e
    if not raw:
        raise DecodeError(stage, "can not unmarshal: empty payload")
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(stage, f"can not unmarshal: {e}") from e


def encode_b64_json(data) -> str:
    return base64.b64encode(json.dumps(data).encode("utf-8")).decode("ascii")


def decode_agreement_items(category: str, payload: str) -> list:
    return parse_agreement_items(category, decode_b64_json(payload, "agreement items"))


def decode_penalty_rules(payload: str) -> list[PenaltyRule]:
    return parse_penalty_rules(decode_b64_json(payload, "penalty rules"))


def decode_evaluation_data(category: str, payload: str) -> list:
    return parse_evaluation_data(category, decode_b64_json(payload, "evaluation data"))


# ── Agreements & Services ─────────────────────────────────────────────

@dataclass
class Agreement:
    """One SLA of a service with its running counters and derived rates."""
    agreement_id: str
    category: str
    items: list = field(default_factory=list)

    total_feedbacks: int = 0
    total_unsatisfied: int = 0
    total_rule_violations: int = 0
    total_rule_violation_without_compensations: int = 0

    has_penalty_rule: bool = False
    penalty_rules: list = field(default_factory=list)

    last_evaluation_at: str = ""

    rule_abiding_rate: float = 1.0
    satisfaction_rate: float = 1.0

    def penalty_for_tier(self, tier: int) -> PenaltyRule:
        for rule in self.penalty_rules:
            if rule.tier == tier:
                return rule
        raise PenaltyTierError(
            f"agreement {self.agreement_id} has no penalty rule for tier {tier}"
        )

    def term_for_code(self, code: str) -> Optional[AgreementTerm]:
        for item in self.items:
            if item.code == code:
                return item
        return None

    def to_dict(self) -> dict:
        return {
            "agreementId": self.agreement_id,
            "category": self.category,
            "items": [i.to_dict() for i in self.items],
            "totalFeedbacks": self.total_feedbacks,
            "totalUnsatisfied": self.total_unsatisfied,
            "totalRuleViolations": self.total_rule_violations,
            "totalRuleViolationWithoutCompensations": self.total_rule_violation_without_compensations,
            "hasPenaltyRule": self.has_penalty_rule,
            "penaltyRules": [r.to_dict() for r in self.penalty_rules],
            "lastEvaluationAt": self.last_evaluation_at,
            "ruleAbidingRate": self.rule_abiding_rate,
            "satisfactionRate": self.satisfaction_rate,
        }

    @classmethod
    def from_dict(cls, raw, stage: str = "service record") -> "Agreement":
        raw = _as_object(raw, stage)
        category = _as_str(_require(raw, "category", stage), "category", stage)
        return cls(
            agreement_id=_as_str(_require(raw, "agreementId", stage), "agreementId", stage),
            category=category,
            items=parse_agreement_items(category, raw.get("items"), stage),
            total_feedbacks=_int_field(raw, "totalFeedbacks", stage),
            total_unsatisfied=_int_field(raw, "totalUnsatisfied", stage),
            total_rule_violations=_int_field(raw, "totalRuleViolations", stage),
            total_rule_violation_without_compensations=_int_field(
                raw, "totalRuleViolationWithoutCompensations", stage),
            has_penalty_rule=bool(raw.get("hasPenaltyRule", False)),
            penalty_rules=parse_penalty_rules(raw.get("penaltyRules"), stage),
            last_evaluation_at=raw.get("lastEvaluationAt") or "",
            rule_abiding_rate=_as_number(raw.get("ruleAbidingRate", 1.0), "ruleAbidingRate", stage),
            satisfaction_rate=_as_number(raw.get("satisfactionRate", 1.0), "satisfactionRate", stage),
        )


@dataclass
class Service:
    """A rated hospitality service. Rollup rates track its weakest agreement."""
    service_id: str
    rule_abiding_rate: float = 1.0
    satisfaction_rate: float = 1.0
    number_of_evaluations: int = 0
    last_evaluation_at: str = ""
    agreements: list = field(default_factory=list)
    doc_type: str = DOC_TYPE_SERVICE

    def find_agreement(self, agreement_id: str) -> Optional[Agreement]:
        for a in self.agreements:
            if a.agreement_id == agreement_id:
                return a
        return None

    def get_agreement(self, agreement_id: str) -> Agreement:
        agreement = self.find_agreement(agreement_id)
        if agreement is None:
            raise NotFoundError(f"the agreement {agreement_id} does not exist")
        return agreement

    def to_dict(self) -> dict:
        return {
            "docType": self.doc_type,
            "serviceId": self.service_id,
            "ruleAbidingRate": self.rule_abiding_rate,
            "satisfactionRate": self.satisfaction_rate,
            "numberOfEvaluations": self.number_of_evaluations,
            "lastEvaluationAt": self.last_evaluation_at,
            "agreements": [a.to_dict() for a in self.agreements],
        }

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict()).encode("utf-8")

    @classmethod
    def from_dict(cls, raw, stage: str = "service record") -> "Service":
        raw = _as_object(raw, stage)
        agreements = raw.get("agreements") or []
        if not isinstance(agreements, list):
            raise DecodeError(stage, "field 'agreements' must be an array")
        return cls(
            service_id=_as_str(_require(raw, "serviceId", stage), "serviceId", stage),
            rule_abiding_rate=_as_number(raw.get("ruleAbidingRate", 1.0), "ruleAbidingRate", stage),
            satisfaction_rate=_as_number(raw.get("satisfactionRate", 1.0), "satisfactionRate", stage),
            number_of_evaluations=_int_field(raw, "numberOfEvaluations", stage),
            last_evaluation_at=raw.get("lastEvaluationAt") or "",
            agreements=[Agreement.from_dict(a, stage) for a in agreements],
            doc_type=raw.get("docType") or DOC_TYPE_SERVICE,
        )

    @classmethod
    def from_json(cls, data: bytes) -> "Service":
        try:
            raw = json.loads(data)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecodeError("service record", f"can not unmarshal: {e}") from e
        return cls.from_dict(raw)


# ── Audit & Results ───────────────────────────────────────────────────

@dataclass(frozen=True)
class Evaluation:
    """Immutable audit record of one verification or rule-enforcement call."""
    evaluation_id: str
    service_id: str
    agreement_id: str
    tx_id: str
    hash: str
    doc_type: str = DOC_TYPE_EVALUATION

    def to_dict(self) -> dict:
        return {
            "docType": self.doc_type,
            "evaluationId": self.evaluation_id,
            "serviceId": self.service_id,
            "agreementId": self.agreement_id,
            "txId": self.tx_id,
            "hash": self.hash,
        }

    @classmethod
    def from_dict(cls, raw, stage: str = "evaluation record") -> "Evaluation":
        raw = _as_object(raw, stage)
        return cls(
            evaluation_id=raw.get("evaluationId", ""),
            service_id=raw.get("serviceId", ""),
            agreement_id=raw.get("agreementId", ""),
            tx_id=raw.get("txId", ""),
            hash=raw.get("hash", ""),
            doc_type=raw.get("docType") or DOC_TYPE_EVALUATION,
        )


@dataclass(frozen=True)
class EvaluationResult:
    satisfied: bool
    penalty_rule: Optional[PenaltyRule] = None
    failure_reason: str = ""

    def to_dict(self) -> dict:
        d = {"satisfied": self.satisfied}
        if self.penalty_rule is not None:
            d["penaltyRule"] = self.penalty_rule.to_dict()
        if self.failure_reason:
            d["failureReason"] = self.failure_reason
        return d


@dataclass(frozen=True)
class AccessKey:
    token: str
    type: str = "Bearer"

    def to_dict(self) -> dict:
        return {"type": self.type, "key": self.token}

    @classmethod
    def from_dict(cls, raw, stage: str = "access key") -> "AccessKey":
        raw = _as_object(raw, stage)
        return cls(
            token=_as_str(_require(raw, "key", stage), "key", stage),
            type=raw.get("type") or "Bearer",
        )


@dataclass(frozen=True)
class PenaltyIntent:
    """A penalty the transaction wants enforced once its writes have committed."""
    evaluation_id: str
    reservation_id: str
    agreement_id: str
    penalty_rules: tuple = ()
    reason: str = ""

    def to_dict(self) -> dict:
        return {
            "evaluationId": self.evaluation_id,
            "reservationId": self.reservation_id,
            "agreementId": self.agreement_id,
            "penaltyRules": [r.to_dict() for r in self.penalty_rules],
            "reason": self.reason,
        }
