"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from domain.lead import LeadStatus
from domain.project import Package


# ============================================================================
# Lead Models
# ============================================================================

class UtmModel(BaseModel):
    source: Optional[str] = None
    medium: Optional[str] = None
    campaign: Optional[str] = None


class LeadCreateRequest(BaseModel):
    """Inbound lead submission from the website form."""
    name: str
    company: str
    email: str
    source: str
    phone: Optional[str] = None
    notes: Optional[str] = None
    utm: Optional[UtmModel] = None
    budget_range: Optional[str] = Field(None, description="5k-10k | 10k-25k | 25k-50k | 50k-100k | 100k+")
    project_type: Optional[str] = None
    timeline: Optional[str] = Field(None, description="asap | 1-2weeks | 1month | 2-3months | flexible")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Jane Doe",
                "company": "Acme Corp",
                "email": "jane@acme.com",
                "source": "referral",
                "notes": "Looking for a new marketing site with a CMS.",
                "utm": {"source": "newsletter", "medium": "email", "campaign": "spring"},
                "budget_range": "25k-50k",
                "timeline": "1month",
            }
        }


class LeadResponse(BaseModel):
    lead_id: UUID
    status: LeadStatus
    score: int
    auto_qualified: bool = False
    client_id: Optional[UUID] = None
    project_id: Optional[UUID] = None


class LeadStatusRequest(BaseModel):
    status: LeadStatus
    notes: Optional[str] = None


# ============================================================================
# Transcription Models
# ============================================================================

class TranscribeRequest(BaseModel):
    """
    Recording to transcribe. meeting_id may be omitted for recordings stored
    at recordings/meeting-<id>/<file>.
    """
    meeting_id: Optional[UUID] = None
    storage_path: Optional[str] = None
    audio_base64: Optional[str] = None


class TranscribeResponse(BaseModel):
    meeting_id: UUID
    transcript: str
    analysis: Dict[str, Any]
    transcript_path: str
    lead_qualified: bool
    client_id: Optional[UUID] = None
    project_id: Optional[UUID] = None


# ============================================================================
# Proposal Models
# ============================================================================

class ProposalGenerateRequest(BaseModel):
    """Exactly one of lead_id or client_id must be provided."""
    package: Package
    lead_id: Optional[UUID] = None
    client_id: Optional[UUID] = None
    custom_requirements: Optional[str] = None
    urgent_delivery: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "package": "standard",
                "lead_id": "123e4567-e89b-12d3-a456-426614174000",
                "custom_requirements": "Bilingual content",
                "urgent_delivery": False,
            }
        }


class ProposalResponse(BaseModel):
    proposal_id: UUID
    proposal_number: str
    status: str
    package: Package
    price: int
    deposit: int
    currency: str
    version: int
    lead_id: Optional[UUID] = None
    client_id: Optional[UUID] = None
    document_path: Optional[str] = None


# ============================================================================
# Project Models
# ============================================================================

class ProjectResponse(BaseModel):
    project_id: UUID
    client_id: UUID
    package: Package
    status: str
    progress_percent: int
    milestones: Dict[str, datetime]
    repo_url: Optional[str] = None
    staging_url: Optional[str] = None
    production_url: Optional[str] = None


# ============================================================================
# Report Models
# ============================================================================

class MonthlyReportRequest(BaseModel):
    client_id: UUID
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2020)


class MonthlyReportResponse(BaseModel):
    report_id: UUID
    client_id: UUID
    month: int
    year: int
    status: str
    document_path: Optional[str] = None


# ============================================================================
# Webhook Models
# ============================================================================

class WebhookResponse(BaseModel):
    received: bool = True
    event_id: str
    event_type: str
    outcome: str = Field(..., description="processed | duplicate | ignored")


class ErrorResponse(BaseModel):
    detail: str


__all__: List[str] = [
    "UtmModel",
    "LeadCreateRequest",
    "LeadResponse",
    "LeadStatusRequest",
    "TranscribeRequest",
    "TranscribeResponse",
    "ProposalGenerateRequest",
    "ProposalResponse",
    "ProjectResponse",
    "MonthlyReportRequest",
    "MonthlyReportResponse",
    "WebhookResponse",
    "ErrorResponse",
]
