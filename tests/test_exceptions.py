"""Tests for custom exception hierarchy."""

import pytest

from itinerary_planner.exceptions import (
    ConfigError,
    GenerationError,
    ItineraryPlannerError,
    ProviderAuthError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
)


class TestExceptionHierarchy:
    def test_base_exception(self):
        with pytest.raises(ItineraryPlannerError):
            raise ItineraryPlannerError("test")

    def test_provider_error_inherits(self):
        with pytest.raises(ItineraryPlannerError):
            raise ProviderError("api fail")

    def test_provider_error_carries_status(self):
        err = ProviderError("api fail", status_code=503)
        assert err.status_code == 503
        assert ProviderError("no status").status_code is None

    def test_provider_auth_error_inherits(self):
        with pytest.raises(ProviderError):
            raise ProviderAuthError("bad key")

    def test_provider_rate_limit_inherits(self):
        with pytest.raises(ProviderError):
            raise ProviderRateLimitError("429")

    def test_provider_timeout_inherits(self):
        with pytest.raises(ProviderError):
            raise ProviderTimeoutError("slow")

    def test_generation_error_is_not_a_provider_error(self):
        err = GenerationError("output JSON could not be parsed", provider="openai")
        assert not isinstance(err, ProviderError)
        assert isinstance(err, ItineraryPlannerError)
        assert err.reason == "output JSON could not be parsed"
        assert err.provider == "openai"
        assert str(err) == err.reason

    def test_config_error_inherits(self):
        with pytest.raises(ItineraryPlannerError):
            raise ConfigError("bad config")

    def test_import_from_root(self):
        """Exceptions are importable from the package root."""
        from itinerary_planner import GenerationError as GE
        from itinerary_planner import ItineraryPlannerError as IE

        assert issubclass(GE, IE)
