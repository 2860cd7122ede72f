"""Tests for the Tourism Block CLI."""

import json

import pytest

import cli
import contract as contract_mod
from contract import TourismContract
from db import WorldState
from penalties import PenaltyDispatcher


@pytest.fixture(autouse=True)
def fresh_contract(tmp_path, monkeypatch):
    contract = TourismContract(
        world_state=WorldState(str(tmp_path / "cli.db")),
        dispatcher=PenaltyDispatcher("http://penalty.test"),
    )
    monkeypatch.setattr(contract_mod, "_contract", contract)
    yield contract


def _json_file(tmp_path, name, data):
    path = tmp_path / name
    path.write_text(json.dumps(data))
    return str(path)


class TestCommands:
    def test_create_and_list(self, capsys):
        cli.main(["create-service", "hotel-1"])
        cli.main(["list-services"])
        out = capsys.readouterr().out
        assert "Service created: hotel-1" in out
        assert "hotel-1 | satisfaction=1.0000" in out

    def test_list_empty(self, capsys):
        cli.main(["list-services"])
        assert "No services." in capsys.readouterr().out

    def test_agreement_and_evaluate(self, tmp_path, capsys, fresh_contract):
        items = _json_file(tmp_path, "items.json", [{"code": "BE003", "quantity": 1}])
        rules = _json_file(tmp_path, "rules.json", [{"type": "discount", "discountPercent": 20}])
        data = _json_file(tmp_path, "data.json", [{"code": "BE002", "quantity": 2}])

        cli.main(["create-service", "hotel-1"])
        cli.main(["add-agreement", "hotel-1", "beds", "--category", "bed",
                  "--items", items, "--penalty-rules", rules, "--penalty"])
        cli.main(["evaluate", "hotel-1", "beds", "e1", "--data", data,
                  "--hash", "h1", "--at", "2024-05-01T10:00:00Z"])

        out = capsys.readouterr().out
        result = json.loads(out[out.index("{"):])
        assert result["satisfied"] is False
        assert result["penaltyRule"] == {"tier": 0, "type": "discount", "discountPercent": 20.0}

        service = fresh_contract.read_service("hotel-1")
        assert service.satisfaction_rate == 0.0
        assert service.last_evaluation_at == "2024-05-01T10:00:00Z"

    def test_rule_abiding_and_count(self, tmp_path, capsys):
        items = _json_file(tmp_path, "items.json", [{"code": "V001"}])
        cli.main(["create-service", "hotel-1"])
        cli.main(["add-agreement", "hotel-1", "view", "--category", "view", "--items", items])
        cli.main(["rule-abiding", "hotel-1", "view", "e1", "--compensated"])
        cli.main(["rule-abiding", "hotel-1", "view", "e2"])
        capsys.readouterr()
        cli.main(["count-evaluations", "--page-size", "1"])
        assert capsys.readouterr().out.strip() == "1"

    def test_set_access_key(self, fresh_contract):
        cli.main(["set-access-key", "tok"])
        assert fresh_contract.read_internal_service_access_key().token == "tok"

    def test_contract_error_exits(self, capsys):
        with pytest.raises(SystemExit) as exc:
            cli.main(["get-service", "ghost"])
        assert exc.value.code == 1
        assert "not_found" in capsys.readouterr().err

    def test_no_command(self):
        with pytest.raises(SystemExit):
            cli.main([])
