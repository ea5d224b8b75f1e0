"""
Reconciliation checks for the read-then-write races the handlers accept.

Lead dedup and proposal numbering are check-then-insert without storage-level
uniqueness, so rare duplicates are possible under concurrency. These checks
report them; they never modify data.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List

from domain.lead import compute_fingerprint
from repositories.client_repository import list_clients
from repositories.lead_repository import list_active_leads
from repositories.proposal_repository import list_proposal_numbers
from services.context import ServiceContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReconciliationReport:
    duplicate_fingerprints: Dict[str, List[str]]
    duplicate_proposal_numbers: Dict[str, List[str]]
    duplicate_clients: Dict[str, List[str]]
    converted_without_links: List[str]

    @property
    def is_clean(self) -> bool:
        return not (
            self.duplicate_fingerprints
            or self.duplicate_proposal_numbers
            or self.duplicate_clients
            or self.converted_without_links
        )


def _duplicates(groups: Dict[str, List[str]]) -> Dict[str, List[str]]:
    return {key: sorted(ids) for key, ids in groups.items() if len(ids) > 1}


def find_duplicate_fingerprints(ctx: ServiceContext) -> Dict[str, List[str]]:
    """Fingerprint -> lead ids, for fingerprints shared by non-deleted leads."""

    groups: Dict[str, List[str]] = defaultdict(list)
    for lead in list_active_leads(ctx.db):
        groups[lead.lead_fingerprint].append(str(lead.lead_id))
    return _duplicates(groups)


def find_duplicate_proposal_numbers(ctx: ServiceContext) -> Dict[str, List[str]]:
    groups: Dict[str, List[str]] = defaultdict(list)
    for row in list_proposal_numbers(ctx.db):
        groups[str(row["proposal_number"])].append(str(row["proposal_id"]))
    return _duplicates(groups)


def find_duplicate_clients(ctx: ServiceContext) -> Dict[str, List[str]]:
    """
    Clients sharing a billing email and company.

    A lead converted more than once leaves two clients with the same identity.
    """

    groups: Dict[str, List[str]] = defaultdict(list)
    for client in list_clients(ctx.db):
        groups[compute_fingerprint(client.billing_email, client.company)].append(str(client.client_id))
    return _duplicates(groups)


def find_converted_leads_without_links(ctx: ServiceContext) -> List[str]:
    return sorted(
        str(lead.lead_id)
        for lead in list_active_leads(ctx.db)
        if lead.is_converted and (lead.client_id is None or lead.project_id is None)
    )


def run_reconciliation(ctx: ServiceContext) -> ReconciliationReport:
    report = ReconciliationReport(
        duplicate_fingerprints=find_duplicate_fingerprints(ctx),
        duplicate_proposal_numbers=find_duplicate_proposal_numbers(ctx),
        duplicate_clients=find_duplicate_clients(ctx),
        converted_without_links=find_converted_leads_without_links(ctx),
    )
    logger.info(
        "Reconciliation complete",
        extra={
            "duplicate_fingerprints": len(report.duplicate_fingerprints),
            "duplicate_proposal_numbers": len(report.duplicate_proposal_numbers),
            "duplicate_clients": len(report.duplicate_clients),
            "converted_without_links": len(report.converted_without_links),
        },
    )
    return report


__all__ = [
    "ReconciliationReport",
    "find_duplicate_fingerprints",
    "find_duplicate_proposal_numbers",
    "find_duplicate_clients",
    "find_converted_leads_without_links",
    "run_reconciliation",
]
