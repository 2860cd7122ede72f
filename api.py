# Tourism Block API
# FastAPI over the contract. One route per transaction type, JSON envelope:
#   {"ok": true, ...}  /  {"ok": false, "error": {"code", "message"}}

import hmac
import json
import logging
import os
import time

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.middleware.base import BaseHTTPMiddleware

from contract import get_contract, setup_logging
from errors import ContractError
from models import encode_b64_json

log = logging.getLogger("tourism_block.api")
setup_logging()

app = FastAPI(title="Tourism Block", version="1.0.0")

TOURISM_ENV = os.environ.get("TOURISM_ENV", "dev").lower()
AUTH_REQUIRED = TOURISM_ENV not in {"dev", "development", "test"}

# HTTP status for each ContractError code
ERROR_STATUS = {
    "not_found": 404,
    "conflict": 409,
    "decode_error": 400,
    "unsupported_category": 422,
    "code_mismatch": 422,
    "penalty_tier_missing": 422,
    "invalid_state": 422,
    "mvcc_conflict": 409,
    "storage_error": 500,
    "dispatch_error": 502,
}


# ── Auth & Access Log ─────────────────────────────────────────────────

PUBLIC_PATHS = {"/", "/docs", "/openapi.json", "/healthz", "/readyz"}


class TokenAuthMiddleware(BaseHTTPMiddleware):
    """
    Bearer token auth outside dev/test. Every request except public routes
    must carry TOURISM_API_TOKEN.
    """

    async def dispatch(self, request: Request, call_next):
        if not AUTH_REQUIRED:
            return await call_next(request)

        api_token = os.environ.get("TOURISM_API_TOKEN", "")
        if not api_token:
            return JSONResponse(
                status_code=500,
                content={
                    "ok": False,
                    "error": {
                        "code": "auth_config_error",
                        "message": "TOURISM_API_TOKEN must be set in non-dev environments",
                    },
                },
            )

        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        auth = request.headers.get("Authorization", "")
        token = auth[7:] if auth.startswith("Bearer ") else ""

        if not token or not hmac.compare_digest(token, api_token):
            return JSONResponse(
                status_code=401,
                content={"ok": False, "error": {"code": "unauthorized", "message": "Unauthorized"}},
            )

        return await call_next(request)


app.add_middleware(TokenAuthMiddleware)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One JSON access line per request."""

    async def dispatch(self, request: Request, call_next):
        started = time.time()
        response = await call_next(request)
        duration_ms = round((time.time() - started) * 1000, 2)
        entry = {
            "event": "api_request",
            "path": request.url.path,
            "method": request.method,
            "status": response.status_code,
            "duration_ms": duration_ms,
            "client_ip": request.client.host if request.client else "unknown",
        }
        log.info(json.dumps(entry, sort_keys=True))
        return response


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(ContractError)
async def contract_error_handler(_: Request, exc: ContractError):
    status = ERROR_STATUS.get(exc.code, 400)
    if status >= 500:
        log.error("TX FAILED %s: %s", exc.code, exc.message)
    return JSONResponse(
        status_code=status,
        content={"ok": False, "error": {"code": exc.code, "message": exc.message}},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(_: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": {"code": "http_error", "message": str(exc.detail)}},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(_: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "ok": False,
            "error": {
                "code": "validation_error",
                "message": "Request validation failed",
                "details": exc.errors(),
            },
        },
    )


# ── Request models ────────────────────────────────────────────────────


EMPTY_ARRAY = encode_b64_json([])


class AccessKeyIn(BaseModel):
    token: str = Field(min_length=1)


class ServiceIn(BaseModel):
    service_id: str = Field(min_length=1, max_length=128)


class AgreementTermsIn(BaseModel):
    category: str
    has_penalty_rule: bool = False
    items: str = EMPTY_ARRAY           # base64 JSON array
    penalty_rules: str = EMPTY_ARRAY   # base64 JSON array


class AgreementIn(AgreementTermsIn):
    agreement_id: str = Field(min_length=1, max_length=128)


class EvaluateIn(BaseModel):
    evaluation_id: str = Field(min_length=1)
    evaluation_data: str = EMPTY_ARRAY   # base64 JSON array
    hash: str = ""
    at: str
    reservation_id: str = ""
    enforce_penalty: bool = False


class RuleAbidingIn(BaseModel):
    evaluation_id: str = Field(min_length=1)
    hash: str = ""
    at: str
    compensated: bool


class SatisfactionEventIn(BaseModel):
    evaluation_id: str = Field(min_length=1)
    reservation_id: str = ""
    hash: str = ""
    at: str
    satisfied: bool
    enforce_penalty: bool = False


# ── Access key ────────────────────────────────────────────────────────


@app.put("/access-key")
def api_set_access_key(body: AccessKeyIn):
    """Store the bearer token used for penalty enforcement."""
    key = get_contract().create_or_update_internal_service_access_key(body.token)
    return {"ok": True, "access_key": key.to_dict()}


@app.get("/access-key")
def api_get_access_key():
    key = get_contract().read_internal_service_access_key()
    return {"ok": True, "access_key": key.to_dict()}


# ── Services ──────────────────────────────────────────────────────────


@app.post("/services")
def api_create_service(body: ServiceIn):
    service = get_contract().create_service(body.service_id)
    return {"ok": True, "service": service.to_dict()}


@app.get("/services")
def api_list_services():
    services = get_contract().get_all_services()
    return {"ok": True, "services": [s.to_dict() for s in services]}


@app.get("/services/{service_id}")
def api_get_service(service_id: str):
    service = get_contract().read_service(service_id)
    return {"ok": True, "service": service.to_dict()}


@app.delete("/services/{service_id}")
def api_delete_service(service_id: str):
    get_contract().delete_service(service_id)
    return {"ok": True, "removed": service_id}


# ── Agreements ────────────────────────────────────────────────────────


@app.post("/services/{service_id}/agreements")
def api_add_agreement(service_id: str, body: AgreementIn):
    service = get_contract().add_agreement(
        service_id, body.agreement_id, body.category, body.has_penalty_rule,
        body.items, body.penalty_rules,
    )
    return {"ok": True, "service": service.to_dict()}


@app.put("/services/{service_id}/agreements/{agreement_id}")
def api_update_agreement(service_id: str, agreement_id: str, body: AgreementTermsIn):
    service = get_contract().update_agreement(
        service_id, agreement_id, body.category, body.has_penalty_rule,
        body.items, body.penalty_rules,
    )
    return {"ok": True, "service": service.to_dict()}


@app.delete("/services/{service_id}/agreements/{agreement_id}")
def api_remove_agreement(service_id: str, agreement_id: str):
    service = get_contract().remove_agreement(service_id, agreement_id)
    return {"ok": True, "service": service.to_dict()}


# ── Evaluations ───────────────────────────────────────────────────────


@app.post("/services/{service_id}/agreements/{agreement_id}/evaluate")
def api_evaluate_sla(service_id: str, agreement_id: str, body: EvaluateIn):
    """Verify evidence against the agreement and update its satisfaction rate."""
    result = get_contract().evaluate_sla(
        service_id, agreement_id, body.evaluation_id, body.evaluation_data,
        body.hash, body.at, reservation_id=body.reservation_id,
        enforce_penalty=body.enforce_penalty,
    )
    return {"ok": True, "result": result.to_dict()}


@app.post("/services/{service_id}/agreements/{agreement_id}/rule-abiding")
def api_update_rule_abiding_rate(service_id: str, agreement_id: str, body: RuleAbidingIn):
    service = get_contract().update_rule_abiding_rate(
        service_id, agreement_id, body.evaluation_id, body.hash, body.at, body.compensated
    )
    return {"ok": True, "service": service.to_dict()}


@app.post("/services/{service_id}/agreements/{agreement_id}/satisfaction-events")
def api_satisfaction_event(service_id: str, agreement_id: str, body: SatisfactionEventIn):
    service = get_contract().handle_satisfaction_evaluation_event(
        service_id, agreement_id, body.evaluation_id, body.reservation_id,
        body.hash, body.at, body.satisfied, enforce_penalty=body.enforce_penalty,
    )
    return {"ok": True, "service": service.to_dict()}


@app.post("/services/{service_id}/agreements/{agreement_id}/penalty-events")
def api_penalty_event(service_id: str, agreement_id: str, body: RuleAbidingIn):
    service = get_contract().handle_penalty_rule_evaluation_event(
        service_id, agreement_id, body.evaluation_id, body.hash, body.at, body.compensated
    )
    return {"ok": True, "service": service.to_dict()}


@app.get("/evaluations/count")
def api_count_evaluations(page_size: int = Query(default=100, gt=0)):
    """Records on the first page of the Evaluation query, at most page_size."""
    count = get_contract().count_all_evaluations(page_size)
    return {"ok": True, "count": count, "page_size": page_size}


@app.get("/evaluations/{evaluation_id}")
def api_get_evaluation(evaluation_id: str):
    evaluation = get_contract().read_evaluation(evaluation_id)
    return {"ok": True, "evaluation": evaluation.to_dict()}


# ── Health ────────────────────────────────────────────────────────────


@app.get("/healthz")
def healthz():
    return {"ok": True, "status": "healthy", "env": TOURISM_ENV}


@app.get("/readyz")
def readyz():
    if AUTH_REQUIRED and not os.environ.get("TOURISM_API_TOKEN"):
        raise HTTPException(
            status_code=503, detail="API token not configured for non-dev environment"
        )
    # Opens the world state and runs an empty transaction
    get_contract().service_exists("__readyz__")
    return {"ok": True, "status": "ready"}


@app.get("/")
def root():
    return {"name": "Tourism Block", "status": "running"}


if __name__ == "__main__":
    import uvicorn

    log.info("API STARTING on port 8000")
    uvicorn.run(app, host="0.0.0.0", port=8000)
