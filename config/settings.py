"""
Process configuration.

Loads a `.env` file from the project root (if present) and reads credentials
from the environment so no secret is hard-coded.

Environment variables required (startup fails without them):
- SUPABASE_URL: Supabase project URL
- SUPABASE_KEY: Supabase service-role key (server-side only)
- STRIPE_SECRET_KEY: Stripe API secret
- STRIPE_WEBHOOK_SECRET: signing secret for the webhook endpoint
- OPENAI_API_KEY: OpenAI API key

Optional:
- SUPABASE_STORAGE_BUCKET (default: agency-files)
- OPENAI_MODEL (default: gpt-4o)
- STRIPE_CARE_BASIC_PRICE_ID / STRIPE_CARE_PLUS_PRICE_ID / STRIPE_CARE_PRO_PRICE_ID
- LOG_LEVEL (default: INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from domain.client import Plan

DEFAULT_ENV_PATH = Path(__file__).parent.parent / ".env"

_REQUIRED = (
    ("SUPABASE_URL", "Set SUPABASE_URL to your Supabase project URL."),
    ("SUPABASE_KEY", "Set SUPABASE_KEY to your Supabase service-role key."),
    ("STRIPE_SECRET_KEY", "Set STRIPE_SECRET_KEY to your Stripe API secret key."),
    ("STRIPE_WEBHOOK_SECRET", "Set STRIPE_WEBHOOK_SECRET to the webhook endpoint's signing secret."),
    ("OPENAI_API_KEY", "Set OPENAI_API_KEY to your OpenAI API key."),
)


@dataclass(frozen=True, slots=True)
class Settings:
    supabase_url: str
    supabase_key: str
    stripe_secret_key: str
    stripe_webhook_secret: str
    openai_api_key: str

    storage_bucket: str = "agency-files"
    openai_model: str = "gpt-4o"
    log_level: str = "INFO"
    care_price_ids: Mapping[str, Plan] = field(default_factory=dict)


def _require(environ: Mapping[str, str], name: str, hint: str) -> str:
    value = environ.get(name)
    if not value:
        raise RuntimeError(f"Missing environment variable: {name}. {hint}")
    return value


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    env_path: Optional[Path] = DEFAULT_ENV_PATH,
) -> Settings:
    """
    Build Settings from the environment.

    Raises:
        RuntimeError: naming the first missing required variable.
    """

    if environ is None:
        if env_path is not None:
            load_dotenv(dotenv_path=env_path)
        environ = os.environ

    required = {name: _require(environ, name, hint) for name, hint in _REQUIRED}

    care_price_ids: dict[str, Plan] = {}
    for variable, plan in (
        ("STRIPE_CARE_BASIC_PRICE_ID", Plan.CARE_BASIC),
        ("STRIPE_CARE_PLUS_PRICE_ID", Plan.CARE_PLUS),
        ("STRIPE_CARE_PRO_PRICE_ID", Plan.CARE_PRO),
    ):
        price_id = environ.get(variable)
        if price_id:
            care_price_ids[price_id] = plan

    return Settings(
        supabase_url=required["SUPABASE_URL"],
        supabase_key=required["SUPABASE_KEY"],
        stripe_secret_key=required["STRIPE_SECRET_KEY"],
        stripe_webhook_secret=required["STRIPE_WEBHOOK_SECRET"],
        openai_api_key=required["OPENAI_API_KEY"],
        storage_bucket=environ.get("SUPABASE_STORAGE_BUCKET") or "agency-files",
        openai_model=environ.get("OPENAI_MODEL") or "gpt-4o",
        log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
        care_price_ids=care_price_ids,
    )
