# Tourism Block Penalty Dispatcher
# Forwards penalty enforcement to the booking backend once a violation has
# been committed to world state.
#
#   POST {base}/rpc/agreements/enforce-penalty-rules
#   Authorization: Bearer <internal service access key>
#   {"evaluationId", "reservationId", "agreementId", "penaltyRules", "reason"}
#
# Enforcement is best-effort. A failure here never rolls back the rate update
# that triggered it.

import json
import logging
import os
from typing import Optional

import requests

from errors import DecodeError, DispatchError, NotFoundError
from models import AccessKey, PenaltyIntent

log = logging.getLogger("tourism_block.penalties")

PENALTY_BASE_URL = os.environ.get(
    "TOURISM_PENALTY_BASE_URL", "http://doan.vinaictgroup.com:8181/tourism-block/v1"
)
PENALTY_TIMEOUT_SEC = int(os.environ.get("TOURISM_PENALTY_TIMEOUT_SEC", "60"))
ENFORCE_PENALTY_RULES_PATH = "/rpc/agreements/enforce-penalty-rules"

ACCESS_KEY_STATE_KEY = "jwt_internal_service_access_key"


# ── Internal Service Access Key ───────────────────────────────────────


def store_access_key(ctx, token: str) -> AccessKey:
    access_key = AccessKey(token=token)
    ctx.put_state(ACCESS_KEY_STATE_KEY, json.dumps(access_key.to_dict()).encode("utf-8"))
    log.info("ACCESS KEY UPDATED")
    return access_key


def read_access_key(ctx) -> AccessKey:
    data = ctx.get_state(ACCESS_KEY_STATE_KEY)
    if data is None:
        raise NotFoundError("the internal service access key does not exist")
    try:
        raw = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError("access key", f"can not unmarshal: {e}") from e
    return AccessKey.from_dict(raw)


# ── Dispatcher ────────────────────────────────────────────────────────


class PenaltyDispatcher:
    """HTTP client for the penalty enforcement endpoint."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None):
        self.base_url = (base_url or PENALTY_BASE_URL).rstrip("/")
        self.timeout = timeout or PENALTY_TIMEOUT_SEC

    def enforce(self, intent: PenaltyIntent, token: str):
        """POST the enforcement request. Raises DispatchError unless the service answers 200."""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {token}",
        }
        try:
            resp = requests.post(
                self.base_url + ENFORCE_PENALTY_RULES_PATH,
                json=intent.to_dict(), headers=headers, timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DispatchError(f"fail to enforce penalty rule {e}") from e

        if resp.status_code != 200:
            raise DispatchError(f"EnforcePenaltyRules with response :{resp.status_code}")
        log.info("PENALTY ENFORCED agreement=%s reservation=%s evaluation=%s rules=%d",
                 intent.agreement_id, intent.reservation_id, intent.evaluation_id,
                 len(intent.penalty_rules))

    def dispatch(self, intent: PenaltyIntent, token: Optional[str]) -> bool:
        """Best-effort enforce. Logs and returns False on any failure."""
        if not token:
            log.warning("PENALTY SKIPPED agreement=%s: no internal service access key",
                        intent.agreement_id)
            return False
        try:
            self.enforce(intent, token)
            return True
        except DispatchError as e:
            log.warning("PENALTY DISPATCH FAILED agreement=%s: %s", intent.agreement_id, e)
            return False


# ── Singleton ─────────────────────────────────────────────────────────

_penalty_dispatcher: Optional[PenaltyDispatcher] = None


def get_penalty_dispatcher() -> PenaltyDispatcher:
    global _penalty_dispatcher
    if _penalty_dispatcher is None:
        _penalty_dispatcher = PenaltyDispatcher()
    return _penalty_dispatcher
