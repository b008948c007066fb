"""Tests for the spend ledger and cost signal."""

import threading

import pytest

from council.core.ledger import Ledger
from council.core.models import ProviderDescriptor, Role, Tier, TokenUsage


def _provider(cost: float, tier: Tier = Tier.PAID, key: str = "STRATEGY") -> ProviderDescriptor:
    return ProviderDescriptor(
        name=f"Model {key}",
        provider_id=f"vendor/{key.lower()}",
        tier=tier,
        cost_per_call=cost,
        key=key,
    )


class TestRecordTransaction:
    def test_charges_cost_and_tokens(self):
        ledger = Ledger(initial_balance=100, threshold=20)
        entry = ledger.record_transaction(
            _provider(0.5), {"total_tokens": 120}, domain="tec.pi"
        )

        assert entry.cost == 0.5
        assert entry.balance_after == 99.5
        assert entry.role == "primary"
        assert entry.session_id == ledger.session_id

        signal = ledger.get_cost_signal()
        assert signal.remaining_balance == 99.5
        assert signal.total_spent == 0.5
        assert signal.total_tokens == 120
        assert signal.transaction_count == 1

    def test_free_provider_costs_nothing(self):
        ledger = Ledger()
        ledger.record_transaction(_provider(0.0, Tier.ELITE_RESERVE), TokenUsage(total_tokens=9))
        assert ledger.get_cost_signal().remaining_balance == 100

    def test_never_raises_on_garbage(self):
        ledger = Ledger()
        entry = ledger.record_transaction(None, "not usage", role="")
        assert entry.cost == 0
        assert entry.provider_name == "unknown"
        assert entry.tokens.total_tokens == 0
        assert ledger.get_cost_signal().transaction_count == 1

    def test_role_recorded(self):
        ledger = Ledger()
        entry = ledger.record_transaction(_provider(0.1), None, role=Role.AUDITOR)
        assert entry.role == "auditor"

    def test_balance_never_increases(self):
        ledger = Ledger()
        balances = [ledger.get_cost_signal().remaining_balance]
        for cost in (0.5, 0.0, 0.3, 0.02):
            ledger.record_transaction(_provider(cost), None)
            balances.append(ledger.get_cost_signal().remaining_balance)
        assert balances == sorted(balances, reverse=True)


class TestCostSignal:
    def test_low_balance_after_spend(self):
        ledger = Ledger(initial_balance=100, threshold=20)
        ledger.record_transaction(_provider(85.0), None)
        signal = ledger.get_cost_signal()
        assert signal.remaining_balance == 15
        assert signal.is_low_balance

    def test_threshold_is_inclusive(self):
        ledger = Ledger(initial_balance=20, threshold=20)
        assert ledger.get_cost_signal().is_low_balance

    def test_balance_may_go_negative(self):
        ledger = Ledger(initial_balance=0.4, threshold=0)
        ledger.record_transaction(_provider(0.5), None)
        assert ledger.get_cost_signal().remaining_balance < 0

    def test_update_balance(self):
        ledger = Ledger(initial_balance=10, threshold=20)
        assert ledger.get_cost_signal().is_low_balance
        assert ledger.update_balance(50) == 60
        assert not ledger.get_cost_signal().is_low_balance


class TestConcurrency:
    def test_no_lost_decrements(self):
        ledger = Ledger(initial_balance=1000, threshold=0)
        provider = _provider(0.5)

        def worker():
            for _ in range(100):
                ledger.record_transaction(provider, {"total_tokens": 1})

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        signal = ledger.get_cost_signal()
        assert signal.transaction_count == 800
        assert signal.total_tokens == 800
        assert signal.total_spent == 400
        assert signal.remaining_balance == 600


class TestFinalReport:
    def test_empty_report(self):
        report = Ledger().generate_final_report()
        assert report.summary.transaction_count == 0
        assert report.summary.average_tokens_per_transaction == 0
        assert report.logs == ()

    def test_rollups(self):
        ledger = Ledger()
        ledger.record_transaction(_provider(0.5), {"total_tokens": 100}, domain="tec.pi")
        ledger.record_transaction(
            _provider(0.0, Tier.ELITE_RESERVE, "REASONING"), {"total_tokens": 51}, domain="tec.pi"
        )
        ledger.record_transaction(_provider(0.3), {"total_tokens": 50}, domain="fin.pi")

        report = ledger.generate_final_report()
        assert report.summary.transaction_count == 3
        assert report.summary.total_tokens == 201
        assert report.summary.average_tokens_per_transaction == 67
        assert report.summary.final_balance == pytest.approx(99.2)
        assert [e.domain for e in report.logs] == ["tec.pi", "tec.pi", "fin.pi"]
        assert report.by_domain["tec.pi"].count == 2
        assert report.by_domain["fin.pi"].total_cost == 0.3
        assert report.by_tier["PAID"].count == 2
        assert report.by_tier["ELITE_RESERVE"].total_cost == 0

    def test_report_is_a_snapshot(self):
        ledger = Ledger()
        report = ledger.generate_final_report()
        ledger.record_transaction(_provider(0.5), None)
        assert report.summary.transaction_count == 0


class TestSummaryLine:
    def test_none_without_records(self):
        assert Ledger().summary_line() is None

    def test_format(self):
        ledger = Ledger(initial_balance=100, threshold=20)
        ledger.record_transaction(_provider(0.5), {"total_tokens": 1500})
        assert ledger.summary_line() == "$0.50 spent · $99.50 left · 1 call · 1.5k tokens"

    def test_flags_low_balance(self):
        ledger = Ledger(initial_balance=10, threshold=20)
        ledger.record_transaction(_provider(0.5), None)
        assert ledger.summary_line().endswith("LOW BALANCE")
