"""
Tests for `domain/lead.py`.

Covers contract rules:
- lead_fingerprint is md5(lower(email) + "-" + lower(company)).
- LeadSubmission rejects malformed input before anything is written.
- Lead.score stays within [0, 100]; timestamps must be UTC.
- Lead is immutable (frozen).
"""

from __future__ import annotations

import hashlib
from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest

from domain.errors import ValidationError
from domain.lead import Lead, LeadStatus, LeadSubmission, Utm, compute_fingerprint

NOW = datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


def _lead(**overrides) -> Lead:
    values = dict(
        lead_id=UUID("00000000-0000-0000-0000-000000000001"),
        name="Jane Doe",
        company="Acme",
        email="jane@acme.io",
        source="website",
        lead_fingerprint=compute_fingerprint("jane@acme.io", "Acme"),
        score=50,
        status=LeadStatus.NEW,
        created_at=NOW,
        updated_at=NOW,
    )
    values.update(overrides)
    return Lead(**values)


def test_fingerprint_is_md5_of_lowercased_email_and_company() -> None:
    expected = hashlib.md5("jane@acme.io-acme".encode("utf-8")).hexdigest()

    assert compute_fingerprint("jane@acme.io", "acme") == expected
    assert compute_fingerprint("Jane@ACME.io", "ACME") == expected


def test_fingerprint_hashes_values_as_given() -> None:
    padded = hashlib.md5(" jane@acme.io-acme ".encode("utf-8")).hexdigest()

    assert compute_fingerprint(" jane@acme.io", "Acme ") == padded


def test_fingerprint_differs_per_company() -> None:
    assert compute_fingerprint("jane@acme.io", "Acme") != compute_fingerprint("jane@acme.io", "Acme Labs")


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": "J"},
        {"company": "A"},
        {"email": "not-an-email"},
        {"email": "jane@localhost"},
        {"source": "  "},
    ],
)
def test_submission_rejects_malformed_input(overrides) -> None:
    values = dict(name="Jane Doe", company="Acme", email="jane@acme.io", source="website")
    values.update(overrides)

    with pytest.raises(ValidationError):
        LeadSubmission(**values)


def test_submission_stored_notes_appends_budget_type_and_timeline() -> None:
    submission = LeadSubmission(
        name="Jane Doe",
        company="Acme",
        email="jane@acme.io",
        source="website",
        notes="Need a new site.",
        budget_range="10k-25k",
        project_type="marketing",
        timeline="1month",
    )

    assert submission.stored_notes() == "Need a new site.\nBudget: 10k-25k\nType: marketing\nTimeline: 1month"


def test_submission_stored_notes_without_free_text() -> None:
    submission = LeadSubmission(
        name="Jane Doe", company="Acme", email="jane@acme.io", source="website", timeline="asap"
    )

    assert submission.stored_notes() == "Timeline: asap"


def test_utm_from_mapping_drops_empty_values() -> None:
    utm = Utm.from_mapping({"source": "newsletter", "medium": "", "campaign": None})

    assert utm == Utm(source="newsletter")
    assert utm.to_dict() == {"source": "newsletter"}


@pytest.mark.parametrize("score", [-1, 101])
def test_lead_score_out_of_range_is_rejected(score) -> None:
    with pytest.raises(ValueError):
        _lead(score=score)


def test_lead_timestamps_must_be_utc() -> None:
    with pytest.raises(ValueError):
        _lead(created_at=datetime(2025, 1, 1, 0, 0, 0))

    with pytest.raises(ValueError):
        _lead(updated_at=datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone(timedelta(hours=2))))


def test_lead_is_converted_tracks_marker() -> None:
    assert _lead().is_converted is False
    assert _lead(converted_at=NOW).is_converted is True


def test_lead_is_immutable() -> None:
    lead = _lead()

    with pytest.raises(FrozenInstanceError):
        lead.status = LeadStatus.WON  # type: ignore[misc]
