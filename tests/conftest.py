"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so tests can import domain,
repositories, services and api, and provides in-memory stand-ins for the
external platforms:

- FakeSupabase: tables + the postgrest query-builder subset the repositories use,
  and Storage buckets
- FakeLLM: canned LLM responses, records every call
- FixedClock: deterministic "now"
"""

import copy
import hashlib
import hmac
import json
import sys
import time
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID, uuid4

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config.settings import Settings  # noqa: E402
from domain.client import Client, Contact, Plan  # noqa: E402
from domain.errors import ExternalServiceError  # noqa: E402
from domain.invoice import Invoice, InvoiceStatus, InvoiceType  # noqa: E402
from domain.lead import Lead, LeadStatus, compute_fingerprint  # noqa: E402
from domain.project import Package, Project, ProjectStatus  # noqa: E402
from domain.proposal import Proposal, ProposalStatus  # noqa: E402
from repositories.client_repository import insert_client  # noqa: E402
from repositories.invoice_repository import insert_invoice  # noqa: E402
from repositories.lead_repository import insert_lead  # noqa: E402
from repositories.project_repository import insert_project  # noqa: E402
from repositories.proposal_repository import insert_proposal  # noqa: E402
from services.context import ServiceContext  # noqa: E402

WEBHOOK_SECRET = "whsec_test_secret"
FIXED_NOW = datetime(2025, 3, 14, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# Supabase double
# ============================================================================

class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]]):
        self.data = data
        self.error = None
        self.count = len(data)


def _comparable(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value


def _compare(left: Any, right: Any) -> tuple:
    a, b = _comparable(left), _comparable(right)
    if type(a) is not type(b):
        return str(left), str(right)
    return a, b


def _sort_key(value: Any) -> tuple:
    # Numeric columns order numerically, like Postgres.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value, "")
    return (1, 0, str(value or ""))


class FakeQuery:
    def __init__(self, rows: List[Dict[str, Any]]):
        self._rows = rows
        self._op = "select"
        self._payload: Any = None
        self._filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._order: Optional[tuple] = None
        self._limit: Optional[int] = None

    # operations
    def select(self, *columns, **kwargs):
        self._op = "select"
        return self

    def insert(self, payload):
        self._op, self._payload = "insert", payload
        return self

    def update(self, payload):
        self._op, self._payload = "update", payload
        return self

    def delete(self):
        self._op = "delete"
        return self

    # filters
    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def is_(self, column, value):
        if value not in ("null", None):
            raise NotImplementedError("FakeQuery.is_ only supports null")
        self._filters.append(lambda row: row.get(column) is None)
        return self

    def in_(self, column, values):
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def gte(self, column, value):
        def check(row):
            if row.get(column) is None:
                return False
            a, b = _compare(row[column], value)
            return a >= b

        self._filters.append(check)
        return self

    def lt(self, column, value):
        def check(row):
            if row.get(column) is None:
                return False
            a, b = _compare(row[column], value)
            return a < b

        self._filters.append(check)
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _matches(self) -> List[Dict[str, Any]]:
        return [row for row in self._rows if all(check(row) for check in self._filters)]

    def execute(self) -> FakeResponse:
        if self._op == "insert":
            payloads = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = [copy.deepcopy(dict(p)) for p in payloads]
            self._rows.extend(inserted)
            return FakeResponse(copy.deepcopy(inserted))

        matched = self._matches()

        if self._op == "update":
            for row in matched:
                row.update(copy.deepcopy(dict(self._payload)))
            return FakeResponse(copy.deepcopy(matched))

        if self._op == "delete":
            for row in matched:
                self._rows.remove(row)
            return FakeResponse(copy.deepcopy(matched))

        if self._order is not None:
            column, desc = self._order
            matched = sorted(matched, key=lambda row: _sort_key(row.get(column)), reverse=desc)
        if self._limit is not None:
            matched = matched[: self._limit]
        return FakeResponse(copy.deepcopy(matched))


class FakeBucket:
    def __init__(self, objects: Dict[str, Dict[str, Any]]):
        self._objects = objects

    def upload(self, path, file, file_options=None):
        self._objects[path] = {"content": bytes(file), "options": dict(file_options or {})}
        return {"path": path}

    def download(self, path):
        if path not in self._objects:
            raise FileNotFoundError(path)
        return self._objects[path]["content"]


class FakeStorage:
    def __init__(self):
        self.buckets: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)

    def from_(self, bucket):
        return FakeBucket(self.buckets[bucket])


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.storage = FakeStorage()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self.tables[name])

    def rows(self, name: str) -> List[Dict[str, Any]]:
        return self.tables[name]


# ============================================================================
# LLM double and clock
# ============================================================================

DEFAULT_PROPOSAL_CONTENT = {
    "executiveSummary": "A modern website built for growth.",
    "projectScope": "Design and build a marketing website.",
    "deliverables": ["Responsive website", "CMS setup"],
    "timeline": [{"phase": "Design", "duration": "2 weeks", "description": "Wireframes and visuals"}],
    "investment": {"total": 15000, "breakdown": []},
    "nextSteps": ["Sign the proposal"],
    "terms": ["40% deposit due on signature"],
}

DEFAULT_ANALYSIS = {
    "summary": "Client wants an ecommerce store.",
    "keyPoints": ["Needs ecommerce checkout", "Integration with inventory system"],
    "actionItems": ["Send proposal"],
    "budget": "$20,000",
    "timeline": "Launch soon",
    "concerns": [],
    "nextSteps": ["Proposal by Friday"],
}

DEFAULT_INSIGHTS = {
    "summary": "A stable month.",
    "achievements": ["99.9% uptime"],
    "recommendations": ["Add a blog"],
    "nextMonthFocus": ["Performance"],
}


class FakeLLM:
    def __init__(self):
        self.proposal_content: Dict[str, Any] = copy.deepcopy(DEFAULT_PROPOSAL_CONTENT)
        self.analysis: Dict[str, Any] = copy.deepcopy(DEFAULT_ANALYSIS)
        self.insights: Dict[str, Any] = copy.deepcopy(DEFAULT_INSIGHTS)
        self.transcript = "We need an online store with inventory integration, soon."
        self.fail = False
        self.calls: List[tuple] = []

    def _check(self, name):
        self.calls.append((name,))
        if self.fail:
            raise ExternalServiceError(f"Failed to generate {name}: LLM unavailable")

    def generate_proposal_content(self, context):
        self._check("proposal content")
        return copy.deepcopy(self.proposal_content)

    def analyze_transcript(self, transcript, meeting_type):
        self._check("transcript analysis")
        return copy.deepcopy(self.analysis)

    def generate_report_insights(self, report_data):
        self._check("report insights")
        return copy.deepcopy(self.insights)

    def transcribe_audio(self, audio, filename):
        self._check("transcription")
        return self.transcript


class FixedClock:
    def __init__(self, now: datetime = FIXED_NOW):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def fake_db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="http://localhost:54321",
        supabase_key="service-role-key",
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
        openai_api_key="sk-openai-test",
        storage_bucket="agency-files",
        care_price_ids={"price_care_plus": Plan.CARE_PLUS, "price_care_pro": Plan.CARE_PRO},
    )


@pytest.fixture
def ctx(fake_db, settings, fake_llm, clock) -> ServiceContext:
    return ServiceContext(db=fake_db, settings=settings, llm=fake_llm, clock=clock)


@pytest.fixture
def api_client(ctx):
    from fastapi.testclient import TestClient

    from api.dependencies import get_context
    from api.main import app

    app.dependency_overrides[get_context] = lambda: ctx
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Build a `stripe-signature` header value for `payload`."""

    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def make_event(event_type: str, data_object: Dict[str, Any], event_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "id": event_id or f"evt_{uuid4().hex}",
        "object": "event",
        "type": event_type,
        "data": {"object": data_object},
    }


@pytest.fixture
def signer() -> Callable[..., str]:
    return sign_payload


@pytest.fixture
def event_factory() -> Callable[..., Dict[str, Any]]:
    return make_event


class Seeder:
    """Inserts entities straight through the repositories."""

    def __init__(self, ctx: ServiceContext):
        self.ctx = ctx

    def lead(self, email="jane@acme.io", company="Acme", status=LeadStatus.NEW, score=60, **overrides) -> Lead:
        now = self.ctx.now()
        lead = Lead(
            lead_id=overrides.pop("lead_id", uuid4()),
            name=overrides.pop("name", "Jane Doe"),
            company=company,
            email=email,
            source=overrides.pop("source", "website"),
            lead_fingerprint=compute_fingerprint(email, company),
            score=score,
            status=status,
            created_at=now,
            updated_at=now,
            **overrides,
        )
        insert_lead(self.ctx.db, lead)
        return lead

    def client(self, company="Acme", plan=Plan.NONE, stripe_customer_id=None, **overrides) -> Client:
        now = self.ctx.now()
        client = Client(
            client_id=overrides.pop("client_id", uuid4()),
            company=company,
            billing_email=overrides.pop("billing_email", "billing@acme.io"),
            plan=plan,
            created_at=now,
            updated_at=now,
            contacts=(Contact(name="Jane Doe", email="jane@acme.io"),),
            stripe_customer_id=stripe_customer_id,
            **overrides,
        )
        insert_client(self.ctx.db, client)
        return client

    def project(self, client_id: UUID, status=ProjectStatus.INTAKE, milestones=None, **overrides) -> Project:
        now = self.ctx.now()
        project = Project(
            project_id=overrides.pop("project_id", uuid4()),
            client_id=client_id,
            package=overrides.pop("package", Package.STANDARD),
            status=status,
            created_at=now,
            updated_at=now,
            milestones=milestones if milestones is not None else {ProjectStatus.INTAKE.value: now},
            **overrides,
        )
        insert_project(self.ctx.db, project)
        return project

    def proposal(self, lead_id=None, client_id=None, price=15000, status=ProposalStatus.SENT,
                 proposal_number="PROP-2025-0001", **overrides) -> Proposal:
        now = self.ctx.now()
        proposal = Proposal(
            proposal_id=overrides.pop("proposal_id", uuid4()),
            package=overrides.pop("package", Package.STANDARD),
            price=price,
            status=status,
            version=1,
            proposal_number=proposal_number,
            created_at=now,
            updated_at=now,
            lead_id=lead_id,
            client_id=client_id,
            **overrides,
        )
        insert_proposal(self.ctx.db, proposal)
        return proposal

    def invoice(self, client_id: UUID, type=InvoiceType.DEPOSIT, status=InvoiceStatus.SENT, amount=6000,
                stripe_invoice_id="in_123", **overrides) -> Invoice:
        now = self.ctx.now()
        invoice = Invoice(
            invoice_id=overrides.pop("invoice_id", uuid4()),
            client_id=client_id,
            amount=amount,
            currency="USD",
            type=type,
            status=status,
            created_at=now,
            updated_at=now,
            stripe_invoice_id=stripe_invoice_id,
            **overrides,
        )
        insert_invoice(self.ctx.db, invoice)
        return invoice

    def meeting(self, meeting_type="discovery", lead_id=None, client_id=None) -> UUID:
        meeting_id = uuid4()
        self.ctx.db.table("meetings").insert(
            {
                "meeting_id": str(meeting_id),
                "type": meeting_type,
                "lead_id": str(lead_id) if lead_id else None,
                "client_id": str(client_id) if client_id else None,
                "project_id": None,
            }
        ).execute()
        return meeting_id


@pytest.fixture
def seed(ctx) -> Seeder:
    return Seeder(ctx)


@pytest.fixture
def webhook_body() -> Callable[[Dict[str, Any]], bytes]:
    return lambda event: json.dumps(event).encode("utf-8")
