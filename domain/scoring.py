"""
Domain: lead scoring heuristic (pure).

score = 50
      x budget factor        (5k-10k 1.0 ... 100k+ 2.0)
      + timeline bonus       (asap +15 ... flexible -5)
      x source factor        (referral 1.3 ... other 0.8)
      + 10 for a business (non-personal) email domain
      + 5 for notes longer than 100 characters
      + 5 when a UTM campaign is present
Rounded half-up and clamped to [0, 100]. Unknown tiers/buckets/sources
contribute nothing.
"""

from __future__ import annotations

from .lead import LeadSubmission
from .rounding import round_half_up

BASE_SCORE: float = 50.0
AUTO_QUALIFY_THRESHOLD: int = 80

BUDGET_MULTIPLIERS: dict[str, float] = {
    "5k-10k": 1.0,
    "10k-25k": 1.2,
    "25k-50k": 1.5,
    "50k-100k": 1.8,
    "100k+": 2.0,
}

TIMELINE_BONUS: dict[str, int] = {
    "asap": 15,
    "1-2weeks": 10,
    "1month": 5,
    "2-3months": 0,
    "flexible": -5,
}

SOURCE_MULTIPLIERS: dict[str, float] = {
    "referral": 1.3,
    "linkedin": 1.2,
    "website": 1.1,
    "google": 1.0,
    "facebook": 0.9,
    "other": 0.8,
}

PERSONAL_EMAIL_DOMAINS: frozenset[str] = frozenset(
    {
        "gmail.com",
        "googlemail.com",
        "yahoo.com",
        "hotmail.com",
        "outlook.com",
        "live.com",
        "icloud.com",
        "aol.com",
    }
)

BUSINESS_EMAIL_BONUS = 10
DETAILED_NOTES_BONUS = 5
DETAILED_NOTES_MIN_LENGTH = 100
CAMPAIGN_BONUS = 5


def score_lead(submission: LeadSubmission) -> int:
    """
    Compute the 0-100 score for a submission. Deterministic, no I/O.

    Example:
        score_lead(LeadSubmission(..., budget_range="100k+", timeline="asap",
                                  source="referral", email="cto@acme.io"))
        # 50 x 2.0 + 15 = 115; x 1.3 = 149.5; + 10 -> clamped to 100
    """

    score = BASE_SCORE

    if submission.budget_range in BUDGET_MULTIPLIERS:
        score *= BUDGET_MULTIPLIERS[submission.budget_range]

    if submission.timeline in TIMELINE_BONUS:
        score += TIMELINE_BONUS[submission.timeline]

    if submission.source in SOURCE_MULTIPLIERS:
        score *= SOURCE_MULTIPLIERS[submission.source]

    if submission.email_domain and submission.email_domain not in PERSONAL_EMAIL_DOMAINS:
        score += BUSINESS_EMAIL_BONUS

    if submission.notes and len(submission.notes) > DETAILED_NOTES_MIN_LENGTH:
        score += DETAILED_NOTES_BONUS

    if submission.utm is not None and submission.utm.campaign:
        score += CAMPAIGN_BONUS

    return min(max(round_half_up(score), 0), 100)


def qualifies_automatically(score: int) -> bool:
    return score >= AUTO_QUALIFY_THRESHOLD
