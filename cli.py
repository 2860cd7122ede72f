#!/usr/bin/env python3
# Tourism Block CLI
# argparse. Submits transactions against the local world state or starts the API.
#
# Agreement items, penalty rules and evaluation evidence are read from JSON
# files holding an array and sent base64-encoded, the way transaction
# arguments travel.

import argparse
import json
import sys
from datetime import datetime, timezone

from contract import get_contract, setup_logging
from errors import ContractError
from models import AgreementCategory, encode_b64_json, format_time


def _read_json_arg(path):
    """Base64 transaction argument from a JSON file. No file means an empty array."""
    if not path:
        return encode_b64_json([])
    with open(path) as f:
        return encode_b64_json(json.load(f))


def _now():
    return format_time(datetime.now(timezone.utc))


def _print_service(service):
    print(f"  {service.service_id} | satisfaction={service.satisfaction_rate:.4f} "
          f"| rule-abiding={service.rule_abiding_rate:.4f} "
          f"| evaluations={service.number_of_evaluations}")
    for a in service.agreements:
        penalty = f" | {len(a.penalty_rules)} penalty rules" if a.has_penalty_rule else ""
        print(f"    [{a.category:>11}] {a.agreement_id} | {len(a.items)} items "
              f"| satisfaction={a.satisfaction_rate:.4f} "
              f"| rule-abiding={a.rule_abiding_rate:.4f}{penalty}")


# ── Commands ──────────────────────────────────────────────────────────


def cmd_serve(args):
    """Start the API server."""
    import uvicorn
    from api import app
    print(f"Starting Tourism Block API on port {args.port}...")
    uvicorn.run(app, host=args.bind, port=args.port)


def cmd_set_access_key(args):
    get_contract().create_or_update_internal_service_access_key(args.token)
    print("Internal service access key stored.")


def cmd_create_service(args):
    service = get_contract().create_service(args.service_id)
    print(f"Service created: {service.service_id}")


def cmd_get_service(args):
    service = get_contract().read_service(args.service_id)
    print(json.dumps(service.to_dict(), indent=2))


def cmd_delete_service(args):
    get_contract().delete_service(args.service_id)
    print(f"Service {args.service_id} deleted.")


def cmd_list_services(args):
    services = get_contract().get_all_services()
    if not services:
        print("No services.")
        return
    for s in services:
        _print_service(s)


def cmd_add_agreement(args):
    service = get_contract().add_agreement(
        args.service_id, args.agreement_id, args.category, args.penalty,
        _read_json_arg(args.items), _read_json_arg(args.penalty_rules),
    )
    print(f"Agreement {args.agreement_id} added.")
    _print_service(service)


def cmd_update_agreement(args):
    service = get_contract().update_agreement(
        args.service_id, args.agreement_id, args.category, args.penalty,
        _read_json_arg(args.items), _read_json_arg(args.penalty_rules),
    )
    print(f"Agreement {args.agreement_id} updated.")
    _print_service(service)


def cmd_remove_agreement(args):
    service = get_contract().remove_agreement(args.service_id, args.agreement_id)
    print(f"Agreement {args.agreement_id} removed.")
    _print_service(service)


def cmd_evaluate(args):
    """Verify evidence against an agreement."""
    result = get_contract().evaluate_sla(
        args.service_id, args.agreement_id, args.evaluation_id,
        _read_json_arg(args.data), args.hash, args.at or _now(),
        reservation_id=args.reservation_id, enforce_penalty=args.enforce,
    )
    print(json.dumps(result.to_dict(), indent=2))


def cmd_rule_abiding(args):
    service = get_contract().update_rule_abiding_rate(
        args.service_id, args.agreement_id, args.evaluation_id,
        args.hash, args.at or _now(), args.compensated,
    )
    _print_service(service)


def cmd_count_evaluations(args):
    print(get_contract().count_all_evaluations(args.page_size))


# ── Parser ────────────────────────────────────────────────────────────


def _agreement_args(p):
    p.add_argument("service_id", help="Service ID")
    p.add_argument("agreement_id", help="Agreement ID")
    p.add_argument("--category", required=True,
                   choices=[c.value for c in AgreementCategory], help="Agreement category")
    p.add_argument("--items", default=None, help="JSON file with the agreement items array")
    p.add_argument("--penalty-rules", default=None, help="JSON file with the penalty rules array")
    p.add_argument("--penalty", action="store_true", help="Agreement carries penalty rules")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="tourism-block",
        description="Tourism Block: SLA verification and service reputation",
    )
    sub = parser.add_subparsers(dest="command")

    p_serve = sub.add_parser("serve", help="Start the API server")
    p_serve.add_argument("--port", type=int, default=8000, help="Port (default 8000)")
    p_serve.add_argument("--bind", default="0.0.0.0", help="Bind address")
    p_serve.set_defaults(func=cmd_serve)

    p_key = sub.add_parser("set-access-key", help="Store the internal service access key")
    p_key.add_argument("token", help="Bearer token for the penalty service")
    p_key.set_defaults(func=cmd_set_access_key)

    p_create = sub.add_parser("create-service", help="Register a service")
    p_create.add_argument("service_id", help="Service ID")
    p_create.set_defaults(func=cmd_create_service)

    p_get = sub.add_parser("get-service", help="Show a service as JSON")
    p_get.add_argument("service_id", help="Service ID")
    p_get.set_defaults(func=cmd_get_service)

    p_del = sub.add_parser("delete-service", help="Delete a service")
    p_del.add_argument("service_id", help="Service ID")
    p_del.set_defaults(func=cmd_delete_service)

    p_list = sub.add_parser("list-services", help="List services and their rates")
    p_list.set_defaults(func=cmd_list_services)

    p_add = sub.add_parser("add-agreement", help="Add an agreement to a service")
    _agreement_args(p_add)
    p_add.set_defaults(func=cmd_add_agreement)

    p_upd = sub.add_parser("update-agreement", help="Replace an agreement's terms")
    _agreement_args(p_upd)
    p_upd.set_defaults(func=cmd_update_agreement)

    p_rm = sub.add_parser("remove-agreement", help="Remove an agreement")
    p_rm.add_argument("service_id", help="Service ID")
    p_rm.add_argument("agreement_id", help="Agreement ID")
    p_rm.set_defaults(func=cmd_remove_agreement)

    p_eval = sub.add_parser("evaluate", help="Verify evidence against an agreement")
    p_eval.add_argument("service_id", help="Service ID")
    p_eval.add_argument("agreement_id", help="Agreement ID")
    p_eval.add_argument("evaluation_id", help="Evaluation ID")
    p_eval.add_argument("--data", default=None, help="JSON file with the evidence array")
    p_eval.add_argument("--hash", default="", help="Content hash of the evaluation")
    p_eval.add_argument("--at", default=None, help="Evaluation time (RFC 3339, default now)")
    p_eval.add_argument("--reservation-id", default="", help="Reservation to penalize")
    p_eval.add_argument("--enforce", action="store_true", help="Enforce penalty rules on failure")
    p_eval.set_defaults(func=cmd_evaluate)

    p_rule = sub.add_parser("rule-abiding", help="Record a rule violation")
    p_rule.add_argument("service_id", help="Service ID")
    p_rule.add_argument("agreement_id", help="Agreement ID")
    p_rule.add_argument("evaluation_id", help="Evaluation ID")
    p_rule.add_argument("--compensated", action="store_true", help="Vendor compensated the violation")
    p_rule.add_argument("--hash", default="", help="Content hash of the evaluation")
    p_rule.add_argument("--at", default=None, help="Evaluation time (RFC 3339, default now)")
    p_rule.set_defaults(func=cmd_rule_abiding)

    p_count = sub.add_parser("count-evaluations", help="Count evaluations on one query page")
    p_count.add_argument("--page-size", type=int, default=100, help="Page size (default 100)")
    p_count.set_defaults(func=cmd_count_evaluations)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging()
    try:
        args.func(args)
    except ContractError as e:
        print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
