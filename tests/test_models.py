"""Tests for the data model: tagged unions, argument codec, record JSON."""

import base64
import json

import pytest

from errors import DecodeError
from models import (
    AccessKey,
    Agreement,
    AirportShuttleEvidence,
    AirportShuttleTerm,
    Evaluation,
    EvaluationResult,
    FacilityEvidence,
    FacilityTerm,
    PenaltyIntent,
    PenaltyRule,
    RoomSizeEvidence,
    RoomSizeTerm,
    SaunaEvidence,
    SaunaTerm,
    Service,
    decode_agreement_items,
    decode_evaluation_data,
    decode_penalty_rules,
    encode_b64_json,
    parse_time,
)


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


# ── Penalty Rules ─────────────────────────────────────────────────────


class TestPenaltyRules:
    def test_tier_defaults_to_position(self):
        rules = decode_penalty_rules(encode_b64_json([
            {"type": "discount", "discountPercent": 10},
            {"type": "upgrade_level"},
        ]))
        assert [r.tier for r in rules] == [0, 1]
        assert rules[0].discount_percent == 10.0
        assert rules[1].type == "upgrade_level"

    def test_explicit_tiers_kept(self):
        rules = decode_penalty_rules(encode_b64_json([
            {"tier": 2, "type": "discount", "discountPercent": 50},
            {"tier": 0, "type": "discount", "discountPercent": 5},
        ]))
        assert [r.tier for r in rules] == [2, 0]

    def test_duplicate_tiers_rejected(self):
        with pytest.raises(DecodeError) as exc:
            decode_penalty_rules(encode_b64_json([
                {"tier": 1, "type": "discount"},
                {"tier": 1, "type": "upgrade_level"},
            ]))
        assert exc.value.stage == "penalty rules"

    def test_unknown_type_rejected(self):
        with pytest.raises(DecodeError):
            decode_penalty_rules(encode_b64_json([{"type": "refund"}]))

    def test_zero_discount_omitted(self):
        assert PenaltyRule(type="upgrade_level", tier=1).to_dict() == {
            "tier": 1, "type": "upgrade_level",
        }


# ── Base64 Argument Codec ─────────────────────────────────────────────


class TestArgumentCodec:
    def test_bad_base64(self):
        with pytest.raises(DecodeError) as exc:
            decode_agreement_items("view", "not base64!!")
        assert exc.value.stage == "agreement items"
        assert "base64" in exc.value.message

    def test_bad_json(self):
        with pytest.raises(DecodeError) as exc:
            decode_evaluation_data("view", _b64(b"[{"))
        assert exc.value.stage == "evaluation data"
        assert "unmarshal" in exc.value.message

    def test_not_an_array(self):
        with pytest.raises(DecodeError):
            decode_agreement_items("view", encode_b64_json({"code": "V001"}))

    def test_item_without_code(self):
        with pytest.raises(DecodeError):
            decode_agreement_items("bed", encode_b64_json([{"quantity": 2}]))

    def test_empty_payload_rejected(self):
        with pytest.raises(DecodeError) as exc:
            decode_agreement_items("view", "")
        assert exc.value.stage == "agreement items"
        with pytest.raises(DecodeError):
            decode_penalty_rules("")
        with pytest.raises(DecodeError):
            decode_evaluation_data("service", "")

    def test_empty_array_is_empty_list(self):
        assert decode_agreement_items("view", encode_b64_json([])) == []
        assert decode_penalty_rules(encode_b64_json([])) == []

    def test_non_numeric_room_size(self):
        with pytest.raises(DecodeError) as exc:
            decode_evaluation_data("room_design", encode_b64_json([{"code": "RSI001", "value": "big"}]))
        assert exc.value.stage == "evaluation data"


# ── Tagged Unions ─────────────────────────────────────────────────────


class TestTaggedUnions:
    def test_term_kinds(self):
        items = decode_agreement_items("service", encode_b64_json([
            {"code": "SAS001", "driverMaxWaitTime": 15, "customerShortWaitTime": 10,
             "customerLongWaitTime": 30},
            {"code": "SSA001", "maxFailures": 2, "minTimeBetween2Failures": 60},
        ]))
        assert items[0] == AirportShuttleTerm("SAS001", 15, 10, 30)
        assert items[1] == SaunaTerm("SSA001", 2, 60)

    def test_room_size_term(self):
        items = decode_agreement_items("room_design", encode_b64_json([{"code": "RSI001", "value": 32.5}]))
        assert items == [RoomSizeTerm("RSI001", 32.5)]

    def test_facility_term_for_other_categories(self):
        items = decode_agreement_items("bed", encode_b64_json([{"code": "BE003", "quantity": 1}]))
        assert items == [FacilityTerm("BE003", 1)]

    def test_same_code_outside_its_category_is_facility(self):
        items = decode_agreement_items("interior", encode_b64_json([{"code": "SAS001"}]))
        assert isinstance(items[0], FacilityTerm)

    def test_shuttle_evidence_timestamps(self):
        data = decode_evaluation_data("service", encode_b64_json([{
            "code": "SAS001",
            "status": "completed",
            "pickUpTime": "2024-05-01T10:00:00Z",
            "driverArriveAt": "2024-05-01T17:05:00.123456789+07:00",
        }]))
        ev = data[0]
        assert isinstance(ev, AirportShuttleEvidence)
        assert ev.status == "completed"
        assert (ev.driver_arrive_at - ev.pick_up_time).total_seconds() == pytest.approx(300.123456)
        assert ev.customer_check_in_at is None

    def test_sauna_evidence(self):
        data = decode_evaluation_data("service", encode_b64_json([{
            "code": "SSA001",
            "saunaRequests": [{"requestAt": "2024-05-01T10:00:00Z", "status": "fail"}],
        }]))
        assert isinstance(data[0], SaunaEvidence)
        assert data[0].sauna_requests[0].status == "fail"

    def test_zero_fields_omitted(self):
        assert FacilityTerm("V001").to_dict() == {"code": "V001"}
        assert FacilityEvidence("IBA001", quantity=1).to_dict() == {"code": "IBA001", "quantity": 1}


# ── Timestamps ────────────────────────────────────────────────────────


class TestTimestamps:
    def test_fraction_and_offset(self):
        a = parse_time("2024-05-01T10:00:00Z")
        b = parse_time("2024-05-01T12:00:00.5+02:00")
        assert (b - a).total_seconds() == 0.5

    def test_invalid(self):
        with pytest.raises(DecodeError):
            parse_time("yesterday")

    def test_zero_time_is_absent(self):
        data = decode_evaluation_data("service", encode_b64_json([{
            "code": "SAS001", "status": "completed",
            "customerCheckInAt": "0001-01-01T00:00:00Z",
        }]))
        assert data[0].customer_check_in_at is None


# ── Records ───────────────────────────────────────────────────────────


def _service() -> Service:
    return Service(
        service_id="svc-1",
        satisfaction_rate=0.4,
        rule_abiding_rate=0.75,
        number_of_evaluations=9,
        last_evaluation_at="2024-05-01T10:00:00Z",
        agreements=[
            Agreement(
                agreement_id="shuttle",
                category="service",
                items=[AirportShuttleTerm("SAS001", 15, 10, 30), SaunaTerm("SSA001", 1, 10)],
                total_feedbacks=5,
                total_unsatisfied=3,
                has_penalty_rule=True,
                penalty_rules=[PenaltyRule("discount", 10.0, 0), PenaltyRule("upgrade_level", 0.0, 1)],
                last_evaluation_at="2024-05-01T10:00:00Z",
                satisfaction_rate=0.4,
            ),
            Agreement(
                agreement_id="room",
                category="room_design",
                items=[RoomSizeTerm("RSI001", 30.0)],
                total_rule_violations=4,
                total_rule_violation_without_compensations=1,
                rule_abiding_rate=0.75,
            ),
            Agreement(agreement_id="view", category="view", items=[FacilityTerm("V001")]),
        ],
    )


class TestServiceRecord:
    def test_json_round_trip_is_lossless(self):
        service = _service()
        assert Service.from_json(service.to_json()) == service

    def test_camel_case_fields(self):
        raw = json.loads(_service().to_json())
        assert raw["docType"] == "Service"
        assert raw["serviceId"] == "svc-1"
        agreement = raw["agreements"][0]
        assert agreement["totalRuleViolationWithoutCompensations"] == 0
        assert agreement["penaltyRules"][0] == {"tier": 0, "type": "discount", "discountPercent": 10.0}

    def test_new_service_defaults(self):
        service = Service(service_id="s")
        assert service.satisfaction_rate == 1.0
        assert service.rule_abiding_rate == 1.0
        assert service.agreements == []

    def test_corrupt_record(self):
        with pytest.raises(DecodeError):
            Service.from_json(b"{not json")


class TestAuxiliaryRecords:
    def test_evaluation_round_trip(self):
        ev = Evaluation("e1", "s1", "a1", "tx-1", "abc")
        assert Evaluation.from_dict(ev.to_dict()) == ev
        assert ev.to_dict()["docType"] == "Evaluation"

    def test_result_omits_empty_fields(self):
        assert EvaluationResult(satisfied=True).to_dict() == {"satisfied": True}

    def test_access_key_shape(self):
        assert AccessKey("tok").to_dict() == {"type": "Bearer", "key": "tok"}

    def test_penalty_intent_body(self):
        intent = PenaltyIntent("e1", "r1", "a1", (PenaltyRule("discount", 20.0, 1),), "late")
        assert intent.to_dict() == {
            "evaluationId": "e1",
            "reservationId": "r1",
            "agreementId": "a1",
            "penaltyRules": [{"tier": 1, "type": "discount", "discountPercent": 20.0}],
            "reason": "late",
        }

    def test_room_size_evidence(self):
        assert RoomSizeEvidence("RSI001", 20.0).to_dict() == {"code": "RSI001", "value": 20.0}
