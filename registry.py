# Tourism Block Agreement Registry
# Services and their agreements in world state.
#
#   <serviceId>                          → Service JSON
#   \x00doc~service\x00Service\x00<id>\x00 → 0x00   (secondary index by docType)
#
# The index entry carries no copy of the service, only its key. A nil value
# would delete the key, so the value is a single null byte.

import logging

from errors import ConflictError, NotFoundError
from models import (
    DOC_TYPE_SERVICE,
    Agreement,
    Service,
    decode_agreement_items,
    decode_penalty_rules,
)
from reputation import rollup_rates

log = logging.getLogger("tourism_block.registry")

SERVICE_INDEX = "doc~service"
INDEX_VALUE = b"\x00"


class AgreementRegistry:
    """CRUD over services and agreements within one transaction."""

    def __init__(self, ctx):
        self.ctx = ctx

    # ── Services ──────────────────────────────────────────────────────

    def service_exists(self, service_id: str) -> bool:
        return self.ctx.get_state(service_id) is not None

    def create_service(self, service_id: str) -> Service:
        if self.service_exists(service_id):
            raise ConflictError(f"the service {service_id} already exists")

        service = Service(service_id=service_id)
        self.save_service(service)
        index_key = self.ctx.create_composite_key(
            SERVICE_INDEX, [service.doc_type, service.service_id]
        )
        self.ctx.put_state(index_key, INDEX_VALUE)
        log.info("SERVICE CREATED %s", service_id)
        return service

    def read_service(self, service_id: str) -> Service:
        data = self.ctx.get_state(service_id)
        if data is None:
            raise NotFoundError(f"the service {service_id} does not exist")
        return Service.from_json(data)

    def save_service(self, service: Service):
        self.ctx.put_state(service.service_id, service.to_json())

    def delete_service(self, service_id: str):
        service = self.read_service(service_id)
        self.ctx.del_state(service_id)
        index_key = self.ctx.create_composite_key(
            SERVICE_INDEX, [service.doc_type, service.service_id]
        )
        self.ctx.del_state(index_key)
        log.warning("SERVICE DELETED %s", service_id)

    def list_services(self) -> list[Service]:
        """Resolve every indexed service. One unreadable service fails the listing."""
        services = []
        for key, _ in self.ctx.get_state_by_partial_composite_key(
            SERVICE_INDEX, [DOC_TYPE_SERVICE]
        ):
            _, parts = self.ctx.split_composite_key(key)
            if len(parts) > 1:
                services.append(self.read_service(parts[1]))
        return services

    # ── Agreements ────────────────────────────────────────────────────

    def add_agreement(self, service_id: str, agreement_id: str, category: str,
                      has_penalty_rule: bool, items: str, penalty_rules: str) -> Service:
        service = self.read_service(service_id)
        if service.find_agreement(agreement_id) is not None:
            raise ConflictError(f"the agreement {agreement_id} already exist")

        agreement = Agreement(
            agreement_id=agreement_id,
            category=category,
            items=decode_agreement_items(category, items),
            has_penalty_rule=has_penalty_rule,
            penalty_rules=decode_penalty_rules(penalty_rules),
        )
        service.agreements.append(agreement)
        self.save_service(service)
        log.info("AGREEMENT ADDED %s/%s | %s | %d items | penalty=%s",
                 service_id, agreement_id, category, len(agreement.items), has_penalty_rule)
        return service

    def update_agreement(self, service_id: str, agreement_id: str, category: str,
                         has_penalty_rule: bool, items: str, penalty_rules: str) -> Service:
        """Replace an agreement's terms. Counters and rates are kept."""
        service = self.read_service(service_id)
        agreement = service.get_agreement(agreement_id)

        new_items = decode_agreement_items(category, items)
        new_rules = decode_penalty_rules(penalty_rules)
        agreement.category = category
        agreement.items = new_items
        agreement.has_penalty_rule = has_penalty_rule
        agreement.penalty_rules = new_rules

        self.save_service(service)
        log.info("AGREEMENT UPDATED %s/%s | %s", service_id, agreement_id, category)
        return service

    def remove_agreement(self, service_id: str, agreement_id: str) -> Service:
        service = self.read_service(service_id)
        agreement = service.get_agreement(agreement_id)

        service.agreements.remove(agreement)
        rollup_rates(service)

        self.save_service(service)
        log.info("AGREEMENT REMOVED %s/%s | service rates satisfaction=%.4f rule_abiding=%.4f",
                 service_id, agreement_id, service.satisfaction_rate, service.rule_abiding_rate)
        return service
