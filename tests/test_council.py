"""End-to-end tests for the Council facade and domain services in sandbox mode."""

import asyncio

import pytest

from council import Council, CouncilConfig
from council.config import LedgerConfig
from council.core.errors import ConfigurationError
from council.core.history import query_entries
from council.core.models import Tier
from council.core.strategies import LiveStrategy
from council.service import (
    DomainService,
    audited_service,
    build_audit_prompt,
    fast_service,
)


def _sandbox_council(**ledger) -> Council:
    return Council.from_config(CouncilConfig(sandbox=True, ledger=LedgerConfig(**ledger)))


class TestCouncilFromConfig:
    def test_sandbox_without_key(self):
        council = Council.from_config(CouncilConfig())
        assert council.sandbox_mode

    def test_development_environment_is_sandbox(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
        council = Council.from_config(CouncilConfig(environment="development"))
        assert council.sandbox_mode

    def test_live_with_key(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
        council = Council.from_config(CouncilConfig())
        assert not council.sandbox_mode
        assert isinstance(council._strategy, LiveStrategy)

    def test_live_requires_paid_ids(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
        monkeypatch.setenv("GPT_MODEL", "")
        with pytest.raises(ConfigurationError):
            Council.from_config(CouncilConfig())

    def test_ledger_uses_configured_budget(self):
        council = _sandbox_council(initial_balance=50, low_balance_threshold=60)
        signal = council.get_cost_signal()
        assert signal.remaining_balance == 50
        assert signal.is_low_balance


class TestCouncilOperations:
    def test_decide_execute_record(self):
        council = _sandbox_council()
        decision = council.council_decision("DEVELOPMENT", domain="tec.pi")
        assert decision.primary.tier is Tier.SANDBOX

        result = asyncio.run(
            council.execute_model(
                decision.primary,
                [{"role": "user", "content": "Write a health check"}],
                domain="tec.pi",
            )
        )
        assert result.ok
        assert "[SANDBOX]" in result.content

        report = council.generate_final_report()
        assert report.summary.transaction_count == 1
        assert report.logs[0].domain == "tec.pi"

    def test_record_transaction_passthrough(self):
        council = _sandbox_council()
        provider = council.registry.get(Tier.PAID, "STRATEGY")
        council.record_transaction(provider, {"total_tokens": 10}, domain="ops")
        assert council.get_cost_signal().total_spent == 0.5

    def test_persist_report(self):
        council = _sandbox_council()
        council.record_transaction(council.registry.get(Tier.PAID, "AUDITOR"), None)
        council.persist_report(label="nightly")

        entries = query_entries(days=None)
        assert len(entries) == 1
        assert entries[0].label == "nightly"
        assert entries[0].sandbox is True
        assert entries[0].total_cost == pytest.approx(0.1)


class TestDomainService:
    def test_requires_domain(self):
        with pytest.raises(ValueError):
            DomainService(_sandbox_council(), "")

    def test_run(self):
        council = _sandbox_council()
        service = DomainService(council, "tec.pi", purpose="Technical services")
        result = asyncio.run(service.run("List open tickets"))

        assert result.ok
        assert "List open tickets" in result.content
        assert result.audit is None
        assert result.meta["domain"] == "tec.pi"
        assert result.meta["sandbox_mode"] is True
        assert result.meta["task_type"] == "OPERATION"
        assert council.get_cost_signal().transaction_count == 1

    def test_default_prompt(self):
        service = DomainService(_sandbox_council(), "fin.pi", purpose="Ledger reconciliation")
        prompt = service.build_prompt()
        assert "fin.pi" in prompt
        assert "Ledger reconciliation" in prompt
        assert service.build_prompt("  custom  ") == "custom"

    def test_audited_service(self):
        council = _sandbox_council()
        result = asyncio.run(audited_service(council, "sec.pi").run("Rotate keys"))
        assert result.ok
        assert result.audit is not None
        assert result.audit.ok
        assert result.audit.meta.role.value == "auditor"
        roles = [e.role for e in council.generate_final_report().logs]
        assert roles == ["primary", "auditor"]

    def test_fast_service(self):
        service = fast_service(_sandbox_council(), "ops.pi")
        result = asyncio.run(service.run("ping"))
        assert result.ok
        assert result.meta["task_type"] == "FAST"

    def test_health(self):
        health = DomainService(_sandbox_council(), "tec.pi").health()
        assert health["status"] == "ready"
        assert health["mode"] == "sandbox"
        assert health["cost_signal"]["remaining_balance"] == 100


def test_audit_prompt_delimits_and_truncates():
    prompt = build_audit_prompt("tec.pi", "a" * 20_000)
    assert "<OUTPUT_START>" in prompt
    assert "<OUTPUT_END>" in prompt
    assert prompt.count("a" * 10_000) == 1
    assert "a" * 10_001 not in prompt
