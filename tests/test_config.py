"""
Tests for `config/settings.py` and the Stripe key set up by `services/context.py`.
"""

from __future__ import annotations

import pytest
import stripe

from config.settings import load_settings
from domain.client import Plan
from services.context import configure_stripe

REQUIRED = {
    "SUPABASE_URL": "http://localhost:54321",
    "SUPABASE_KEY": "service-role-key",
    "STRIPE_SECRET_KEY": "sk_test_123",
    "STRIPE_WEBHOOK_SECRET": "whsec_test",
    "OPENAI_API_KEY": "sk-openai",
}


def test_load_settings_with_defaults() -> None:
    settings = load_settings(environ=dict(REQUIRED))

    assert settings.stripe_webhook_secret == "whsec_test"
    assert settings.storage_bucket == "agency-files"
    assert settings.openai_model == "gpt-4o"
    assert settings.log_level == "INFO"
    assert settings.care_price_ids == {}


def test_care_price_ids_map_to_plans() -> None:
    environ = dict(REQUIRED, STRIPE_CARE_PLUS_PRICE_ID="price_plus", STRIPE_CARE_PRO_PRICE_ID="price_pro", LOG_LEVEL="debug")

    settings = load_settings(environ=environ)

    assert settings.care_price_ids == {"price_plus": Plan.CARE_PLUS, "price_pro": Plan.CARE_PRO}
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("missing", sorted(REQUIRED))
def test_missing_required_variable_fails_fast(missing) -> None:
    environ = {name: value for name, value in REQUIRED.items() if name != missing}

    with pytest.raises(RuntimeError, match=missing):
        load_settings(environ=environ)


def test_stripe_secret_key_is_applied(monkeypatch) -> None:
    monkeypatch.setattr(stripe, "api_key", None)

    configure_stripe(load_settings(environ=dict(REQUIRED)))

    assert stripe.api_key == "sk_test_123"
