"""
Tests for `services/reconciliation_service.py`.
"""

from __future__ import annotations

from domain.proposal import ProposalStatus
from services.reconciliation_service import run_reconciliation


def test_clean_records(ctx, seed) -> None:
    seed.lead(email="a@acme.io")
    seed.lead(email="b@acme.io")
    client = seed.client()
    seed.proposal(client_id=client.client_id, proposal_number="PROP-2025-0001")
    seed.proposal(client_id=client.client_id, proposal_number="PROP-2025-0002")

    assert run_reconciliation(ctx).is_clean


def test_reports_each_kind_of_duplicate(ctx, seed, clock) -> None:
    first = seed.lead(email="jane@acme.io")
    second = seed.lead(email="JANE@acme.io", company="ACME")
    orphan = seed.lead(email="x@other.io", company="Other", converted_at=clock())
    client_a = seed.client(company="Beta", billing_email="ops@beta.io")
    client_b = seed.client(company="beta", billing_email="OPS@beta.io")
    seed.proposal(client_id=client_a.client_id, proposal_number="PROP-2025-0007", status=ProposalStatus.DRAFT)
    seed.proposal(client_id=client_b.client_id, proposal_number="PROP-2025-0007", status=ProposalStatus.DRAFT)

    report = run_reconciliation(ctx)

    assert not report.is_clean
    assert list(report.duplicate_fingerprints.values()) == [sorted([str(first.lead_id), str(second.lead_id)])]
    assert list(report.duplicate_proposal_numbers) == ["PROP-2025-0007"]
    assert list(report.duplicate_clients.values()) == [sorted([str(client_a.client_id), str(client_b.client_id)])]
    assert report.converted_without_links == [str(orphan.lead_id)]


def test_deleted_leads_are_not_duplicates(ctx, fake_db, seed) -> None:
    seed.lead(email="jane@acme.io")
    seed.lead(email="jane@acme.io", is_deleted=True, deleted_at=seed.ctx.now())

    assert run_reconciliation(ctx).duplicate_fingerprints == {}
