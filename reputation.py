# Tourism Block Reputation Engine: satisfaction & rule-abiding rates
#
# Agreement rates:
#   Satisfaction:  (totalFeedbacks − totalUnsatisfied) / totalFeedbacks
#   Rule-abiding:  (totalRuleViolations − totalRuleViolationWithoutCompensations)
#                  / totalRuleViolations
#   Both stay at 1.0 while their denominator is 0.
#
# Service rollup: the minimum of each rate across its agreements (1.0 with
# no agreements). A service is only as trustworthy as its weakest agreement.
#
# Timestamps come from the transaction input, never the wall clock, so every
# validator replaying the transaction computes the same record.

import logging
from dataclasses import dataclass
from typing import Optional

from models import Agreement, EvaluationResult, PenaltyIntent, Service

log = logging.getLogger("tourism_block.reputation")


def compute_rate(total: int, failures: int) -> float:
    if total <= 0:
        return 1.0
    return (total - failures) / total


def rollup_rates(service: Service) -> Service:
    """Reset the service's rates to the minimum across its agreements."""
    if service.agreements:
        service.satisfaction_rate = min(a.satisfaction_rate for a in service.agreements)
        service.rule_abiding_rate = min(a.rule_abiding_rate for a in service.agreements)
    else:
        service.satisfaction_rate = 1.0
        service.rule_abiding_rate = 1.0
    return service


@dataclass
class RateUpdate:
    """Outcome of folding one event into a service."""
    service: Service
    agreement: Agreement
    penalty_intent: Optional[PenaltyIntent] = None


class ReputationEngine:
    """Folds satisfaction and rule-abiding events into agreement counters.

    Works on an in-memory Service; persisting it is the caller's job.
    """

    def record_satisfaction(self, service: Service, agreement_id: str, satisfied: bool,
                            at: str, evaluation_id: str = "", reservation_id: str = "",
                            enforce_penalty: bool = False,
                            result: Optional[EvaluationResult] = None) -> RateUpdate:
        agreement = service.get_agreement(agreement_id)

        intent = None
        agreement.total_feedbacks += 1
        if not satisfied:
            agreement.total_unsatisfied += 1
            if agreement.has_penalty_rule and enforce_penalty:
                intent = self._penalty_intent(agreement, evaluation_id, reservation_id, result)
        agreement.satisfaction_rate = compute_rate(
            agreement.total_feedbacks, agreement.total_unsatisfied
        )

        self._stamp(service, agreement, at)
        log.info("SATISFACTION %s/%s satisfied=%s rate=%.4f service_rate=%.4f",
                 service.service_id, agreement_id, satisfied,
                 agreement.satisfaction_rate, service.satisfaction_rate)
        return RateUpdate(service=service, agreement=agreement, penalty_intent=intent)

    def record_rule_abiding(self, service: Service, agreement_id: str,
                            compensated: bool, at: str) -> RateUpdate:
        agreement = service.get_agreement(agreement_id)

        agreement.total_rule_violations += 1
        if not compensated:
            agreement.total_rule_violation_without_compensations += 1
        agreement.rule_abiding_rate = compute_rate(
            agreement.total_rule_violations,
            agreement.total_rule_violation_without_compensations,
        )

        self._stamp(service, agreement, at)
        log.info("RULE-ABIDING %s/%s compensated=%s rate=%.4f service_rate=%.4f",
                 service.service_id, agreement_id, compensated,
                 agreement.rule_abiding_rate, service.rule_abiding_rate)
        return RateUpdate(service=service, agreement=agreement)

    @staticmethod
    def _stamp(service: Service, agreement: Agreement, at: str):
        agreement.last_evaluation_at = at
        rollup_rates(service)
        service.number_of_evaluations += 1
        service.last_evaluation_at = at

    @staticmethod
    def _penalty_intent(agreement: Agreement, evaluation_id: str, reservation_id: str,
                        result: Optional[EvaluationResult]) -> PenaltyIntent:
        # Only a verdict names a rule; a bare event leaves the choice to the penalty service
        rules = ()
        if result is not None and result.penalty_rule is not None:
            rules = (result.penalty_rule,)
        return PenaltyIntent(
            evaluation_id=evaluation_id,
            reservation_id=reservation_id,
            agreement_id=agreement.agreement_id,
            penalty_rules=rules,
            reason=result.failure_reason if result is not None else "",
        )


# ── Singleton ─────────────────────────────────────────────────────────

_reputation_engine: Optional[ReputationEngine] = None


def get_reputation_engine() -> ReputationEngine:
    global _reputation_engine
    if _reputation_engine is None:
        _reputation_engine = ReputationEngine()
    return _reputation_engine
