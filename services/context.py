"""
Service context: the external handles every service function receives.

Built once at process start (API lifespan or a script's main) and passed
explicitly, so tests can assemble one from in-memory doubles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

import stripe
from supabase import Client as SupabaseClient  # type: ignore[import-not-found]

from config.settings import Settings
from domain.time import Clock, utc_now
from repositories.client import create_supabase_client
from services.llm_service import LLMService, OpenAILLMService


@dataclass(frozen=True)
class ServiceContext:
    db: SupabaseClient
    settings: Settings
    llm: LLMService
    clock: Clock = field(default=utc_now)

    def now(self) -> datetime:
        return self.clock()


def configure_stripe(settings: Settings) -> None:
    # Webhook verification uses the signing secret; outbound Stripe API calls use this key.
    stripe.api_key = settings.stripe_secret_key


def build_context(settings: Settings) -> ServiceContext:
    """Create the Supabase and OpenAI handles for `settings` and set the Stripe key."""

    configure_stripe(settings)
    return ServiceContext(
        db=create_supabase_client(settings),
        settings=settings,
        llm=OpenAILLMService(api_key=settings.openai_api_key, model=settings.openai_model),
    )


__all__ = ["ServiceContext", "configure_stripe", "build_context"]
