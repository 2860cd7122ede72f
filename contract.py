# Tourism Block Contract
# One method per transaction type. Each runs inside a single world-state
# transaction: the body reads and buffers writes, and the write set commits
# only if the body returns. Any ContractError raised inside discards it.
#
#   evaluate_sla                          verify evidence → satisfaction update → audit
#   handle_satisfaction_evaluation_event  pre-classified satisfied flag → update → audit
#   update_rule_abiding_rate /
#   handle_penalty_rule_evaluation_event  compensated flag → rule-abiding update → audit
#
# Penalty enforcement is a side effect on an external system, so it happens
# after commit and only for unsatisfied, penalty-bearing verdicts where the
# caller asked for it. A failed dispatch is logged; the update stands.

import logging
import os
from typing import Optional

from db import WorldState
from errors import NotFoundError
from evaluations import EvaluationLedger
from models import (
    AccessKey,
    Evaluation,
    EvaluationResult,
    PenaltyIntent,
    Service,
    decode_evaluation_data,
)
from penalties import PenaltyDispatcher, get_penalty_dispatcher, read_access_key, store_access_key
from registry import AgreementRegistry
from reputation import ReputationEngine, get_reputation_engine
from verification import VerificationEngine, get_verification_engine

LOG_FILE = os.environ.get(
    "TOURISM_LOG_FILE", os.path.join(os.path.dirname(__file__), "tourism_block.log")
)

log = logging.getLogger("tourism_block.contract")


# ── Logging ───────────────────────────────────────────────────────────


def setup_logging(log_file=None, level=logging.INFO):
    """Console + file handlers on the tourism_block logger. Installed once."""
    log_file = log_file or LOG_FILE
    logger = logging.getLogger("tourism_block")

    if logger.handlers:
        return logger

    logger.setLevel(level)
    fmt = logging.Formatter(
        "[%(asctime)s] %(levelname)-8s %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )

    fh = logging.FileHandler(log_file)
    fh.setLevel(level)
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    return logger


# ── Contract ──────────────────────────────────────────────────────────


class TourismContract:
    """Transaction surface over the world state."""

    def __init__(self, world_state: Optional[WorldState] = None,
                 engine: Optional[VerificationEngine] = None,
                 reputation: Optional[ReputationEngine] = None,
                 dispatcher: Optional[PenaltyDispatcher] = None):
        self.world_state = world_state or WorldState()
        self.engine = engine or get_verification_engine()
        self.reputation = reputation or get_reputation_engine()
        self.dispatcher = dispatcher or get_penalty_dispatcher()

    # ── Internal Service Access Key ───────────────────────────────────

    def create_or_update_internal_service_access_key(self, token: str,
                                                     tx_id: Optional[str] = None) -> AccessKey:
        with self.world_state.transaction(tx_id) as ctx:
            return store_access_key(ctx, token)

    def read_internal_service_access_key(self) -> AccessKey:
        with self.world_state.transaction() as ctx:
            return read_access_key(ctx)

    # ── Services ──────────────────────────────────────────────────────

    def create_service(self, service_id: str, tx_id: Optional[str] = None) -> Service:
        with self.world_state.transaction(tx_id) as ctx:
            return AgreementRegistry(ctx).create_service(service_id)

    def read_service(self, service_id: str) -> Service:
        with self.world_state.transaction() as ctx:
            return AgreementRegistry(ctx).read_service(service_id)

    def delete_service(self, service_id: str, tx_id: Optional[str] = None):
        with self.world_state.transaction(tx_id) as ctx:
            AgreementRegistry(ctx).delete_service(service_id)

    def get_all_services(self) -> list[Service]:
        with self.world_state.transaction() as ctx:
            return AgreementRegistry(ctx).list_services()

    def service_exists(self, service_id: str) -> bool:
        with self.world_state.transaction() as ctx:
            return AgreementRegistry(ctx).service_exists(service_id)

    # ── Agreements ────────────────────────────────────────────────────

    def add_agreement(self, service_id: str, agreement_id: str, category: str,
                      has_penalty_rule: bool, items: str, penalty_rules: str,
                      tx_id: Optional[str] = None) -> Service:
        with self.world_state.transaction(tx_id) as ctx:
            return AgreementRegistry(ctx).add_agreement(
                service_id, agreement_id, category, has_penalty_rule, items, penalty_rules
            )

    def update_agreement(self, service_id: str, agreement_id: str, category: str,
                         has_penalty_rule: bool, items: str, penalty_rules: str,
                         tx_id: Optional[str] = None) -> Service:
        with self.world_state.transaction(tx_id) as ctx:
            return AgreementRegistry(ctx).update_agreement(
                service_id, agreement_id, category, has_penalty_rule, items, penalty_rules
            )

    def remove_agreement(self, service_id: str, agreement_id: str,
                         tx_id: Optional[str] = None) -> Service:
        with self.world_state.transaction(tx_id) as ctx:
            return AgreementRegistry(ctx).remove_agreement(service_id, agreement_id)

    # ── Evaluations ───────────────────────────────────────────────────

    def evaluate_sla(self, service_id: str, agreement_id: str, evaluation_id: str,
                     evaluation_data: str, content_hash: str, at: str,
                     reservation_id: str = "", enforce_penalty: bool = False,
                     tx_id: Optional[str] = None) -> EvaluationResult:
        """Verify base64 evidence against an agreement and fold the verdict in."""
        with self.world_state.transaction(tx_id) as ctx:
            registry = AgreementRegistry(ctx)
            service = registry.read_service(service_id)
            agreement = service.get_agreement(agreement_id)

            evidence = decode_evaluation_data(agreement.category, evaluation_data)
            result = self.engine.verify_sla(agreement, evidence)

            update = self.reputation.record_satisfaction(
                service, agreement_id, result.satisfied, at,
                evaluation_id=evaluation_id, reservation_id=reservation_id,
                enforce_penalty=enforce_penalty, result=result,
            )
            registry.save_service(update.service)
            EvaluationLedger(ctx).record(evaluation_id, service_id, agreement_id, content_hash)
            token = self._dispatch_token(ctx, update.penalty_intent)

        self._dispatch(update.penalty_intent, token)
        return result

    def handle_satisfaction_evaluation_event(self, service_id: str, agreement_id: str,
                                             evaluation_id: str, reservation_id: str,
                                             content_hash: str, at: str, satisfied: bool,
                                             enforce_penalty: bool = False,
                                             tx_id: Optional[str] = None) -> Service:
        with self.world_state.transaction(tx_id) as ctx:
            registry = AgreementRegistry(ctx)
            service = registry.read_service(service_id)
            update = self.reputation.record_satisfaction(
                service, agreement_id, satisfied, at,
                evaluation_id=evaluation_id, reservation_id=reservation_id,
                enforce_penalty=enforce_penalty,
            )
            registry.save_service(update.service)
            EvaluationLedger(ctx).record(evaluation_id, service_id, agreement_id, content_hash)
            token = self._dispatch_token(ctx, update.penalty_intent)

        self._dispatch(update.penalty_intent, token)
        return update.service

    def update_rule_abiding_rate(self, service_id: str, agreement_id: str, evaluation_id: str,
                                 content_hash: str, at: str, compensated: bool,
                                 tx_id: Optional[str] = None) -> Service:
        with self.world_state.transaction(tx_id) as ctx:
            registry = AgreementRegistry(ctx)
            service = registry.read_service(service_id)
            update = self.reputation.record_rule_abiding(service, agreement_id, compensated, at)
            registry.save_service(update.service)
            EvaluationLedger(ctx).record(evaluation_id, service_id, agreement_id, content_hash)
            return update.service

    def handle_penalty_rule_evaluation_event(self, service_id: str, agreement_id: str,
                                             evaluation_id: str, content_hash: str, at: str,
                                             compensated: bool,
                                             tx_id: Optional[str] = None) -> Service:
        return self.update_rule_abiding_rate(
            service_id, agreement_id, evaluation_id, content_hash, at, compensated, tx_id=tx_id
        )

    def count_all_evaluations(self, page_size: int) -> int:
        with self.world_state.transaction() as ctx:
            return EvaluationLedger(ctx).count(page_size)

    def read_evaluation(self, evaluation_id: str) -> Evaluation:
        with self.world_state.transaction() as ctx:
            return EvaluationLedger(ctx).read(evaluation_id)

    # ── Penalty Dispatch ──────────────────────────────────────────────

    @staticmethod
    def _dispatch_token(ctx, intent: Optional[PenaltyIntent]) -> Optional[str]:
        if intent is None:
            return None
        try:
            return read_access_key(ctx).token
        except NotFoundError:
            return None

    def _dispatch(self, intent: Optional[PenaltyIntent], token: Optional[str]):
        if intent is not None:
            self.dispatcher.dispatch(intent, token)


# ── Singleton ─────────────────────────────────────────────────────────

_contract: Optional[TourismContract] = None


def get_contract() -> TourismContract:
    global _contract
    if _contract is None:
        _contract = TourismContract()
    return _contract
