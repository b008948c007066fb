"""Tests for the persistent spend history."""

from council.core.history import query_entries, query_totals, record_report
from council.core.ledger import Ledger
from council.core.models import ProviderDescriptor, Tier


def _report(*costs):
    ledger = Ledger()
    for cost in costs:
        provider = ProviderDescriptor(
            name="M", provider_id="vendor/m", tier=Tier.PAID, cost_per_call=cost
        )
        ledger.record_transaction(provider, {"total_tokens": 10})
    return ledger.generate_final_report()


def test_empty_history():
    assert query_entries() == []
    assert query_totals() == {
        "sessions": 0,
        "total_calls": 0,
        "total_tokens": 0,
        "total_cost": 0.0,
    }


def test_empty_session_skipped():
    record_report(_report())
    assert query_entries() == []


def test_record_and_query():
    record_report(_report(0.5, 0.5), label="first")
    record_report(_report(0.3), label="second", sandbox=True)

    entries = query_entries()
    assert [e.label for e in entries] == ["second", "first"]
    assert entries[0].sandbox is True
    assert entries[1].transaction_count == 2
    assert entries[1].by_tier["PAID"]["count"] == 2

    totals = query_totals()
    assert totals["sessions"] == 2
    assert totals["total_calls"] == 3
    assert totals["total_tokens"] == 30
    assert totals["total_cost"] == 1.3


def test_limit():
    for i in range(3):
        record_report(_report(0.1), label=f"run{i}")
    assert len(query_entries(limit=2)) == 2
