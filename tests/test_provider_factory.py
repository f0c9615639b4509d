"""Tests for provider construction from config."""

from __future__ import annotations

import logging

from itinerary_planner.config import PlannerConfig
from itinerary_planner.generation.factory import create_generator, create_providers
from itinerary_planner.generation.providers.alternate import AlternateProvider
from itinerary_planner.generation.providers.openai_compat import OpenAIProvider


def _config(alternate: bool = False, openai: bool = False) -> PlannerConfig:
    config = PlannerConfig()
    if alternate:
        config.alternate.api_url = "https://llm.example.com/v1/chat/completions"
        config.alternate.api_key = "alt-key"
        config.alternate.max_retries = 3
    if openai:
        config.openai.api_key = "sk-test-123456789"
    return config


class TestCreateProviders:
    def test_none_configured(self):
        assert create_providers(_config()) == []

    def test_alternate_preferred_over_openai(self):
        providers = create_providers(_config(alternate=True, openai=True))
        assert [type(p) for p in providers] == [AlternateProvider, OpenAIProvider]

    def test_openai_only(self):
        providers = create_providers(_config(openai=True))
        assert len(providers) == 1
        assert providers[0].provider_name == "openai"

    def test_retry_policy_from_config(self):
        alt = create_providers(_config(alternate=True))[0]
        policy = alt.retry_policy
        assert policy.max_retries == 3
        assert policy.timeout == 60.0
        assert policy.timeout_step == 5.0
        assert policy.backoff_base == 0.7

    def test_half_configured_alternate_is_skipped(self, caplog):
        config = PlannerConfig()
        config.alternate.api_url = "https://llm.example.com"
        with caplog.at_level(logging.WARNING, logger="itinerary-planner"):
            assert create_providers(config) == []
        assert "needs both api_url and api_key" in caplog.text


class TestCreateGenerator:
    def test_uses_generation_settings(self):
        config = _config(openai=True)
        config.generation.recovery_max_retries = 0
        generator = create_generator(config)
        assert generator.has_provider
        assert generator._recovery_max_retries == 0

    def test_no_providers_means_mock(self):
        assert create_generator(_config()).has_provider is False
