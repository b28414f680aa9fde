"""
DevCamper Backend — Geocoder Service Unit Tests (Mocked)
=========================================================

What:  Tests for the circuit breaker and MapQuestGeocoder.
How:   httpx.MockTransport answers the provider calls; retries run with zero
       backoff so the suite stays fast.

What we test:
    ✅ Successful lookup is mapped to GeoLocation
    ✅ Transient failures (5xx, transport errors) are retried
    ✅ Client errors (4xx) are not retried
    ✅ Exhausted retries → GeocoderError, recorded by the circuit breaker
    ✅ No result → ValidationError, not counted as an outage
    ✅ Open circuit rejects without calling the provider
"""

import time

import httpx
import pytest

from devcamper.config import Settings, settings
from devcamper.exceptions import CircuitBreakerOpenError, GeocoderError, ValidationError
from devcamper.services.geocoder_service import CircuitBreaker, MapQuestGeocoder

BOSTON = {
    "info": {"statuscode": 0, "messages": []},
    "results": [
        {
            "providedLocation": {"location": "02215"},
            "locations": [
                {
                    "street": "233 Bay State Rd",
                    "adminArea5": "Boston",
                    "adminArea3": "MA",
                    "adminArea1": "US",
                    "postalCode": "02215",
                    "latLng": {"lat": 42.350846, "lng": -71.105382},
                }
            ],
        }
    ],
}


class ProviderStub:
    """Callable MockTransport handler replaying a list of responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(outcome, Exception):
            raise outcome
        status, body = outcome
        return httpx.Response(status, json=body)


def make_geocoder(stub: ProviderStub, attempts: int = 3) -> MapQuestGeocoder:
    return MapQuestGeocoder(
        api_key="test-key",
        base_url="https://geocoder.test/address",
        max_attempts=attempts,
        min_wait=0,
        max_wait=0,
        transport=httpx.MockTransport(stub),
    )


class TestCircuitBreaker:

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        assert cb.state == CircuitBreaker.CLOSED
        assert cb.failure_count == 0

    def test_stays_closed_under_threshold(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        for _ in range(4):
            cb.record_failure()
        assert cb.state == CircuitBreaker.CLOSED
        assert cb.can_execute() is True

    def test_open_circuit_rejects_calls(self):
        cb = CircuitBreaker(failure_threshold=2, recovery_timeout=60)
        cb.record_failure()
        cb.record_failure()

        assert cb.state == CircuitBreaker.OPEN
        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            cb.can_execute()
        assert 0 < exc_info.value.recovery_time <= 60

    def test_half_open_after_recovery_timeout(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)

        assert cb.can_execute() is True
        assert cb.state == CircuitBreaker.HALF_OPEN

    def test_failure_in_half_open_reopens(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=0)
        for _ in range(3):
            cb.record_failure()
        cb.can_execute()

        cb.record_failure()
        assert cb.state == CircuitBreaker.OPEN

    def test_success_resets(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        cb.record_failure()
        cb.record_failure()

        cb.record_success()
        assert cb.failure_count == 0
        assert cb.state == CircuitBreaker.CLOSED


class TestMapQuestGeocoder:

    def test_defaults_come_from_settings(self):
        geocoder = MapQuestGeocoder()

        assert geocoder.api_key == settings.geocoder_api_key
        assert geocoder.base_url == settings.geocoder_url
        assert geocoder.timeout == settings.geocoder_timeout
        assert geocoder.circuit_breaker.failure_threshold == settings.cb_failure_threshold

    def test_every_geocoder_setting_is_consumed(self):
        geocoder_settings = {name for name in Settings.model_fields if name.startswith("geocoder_")}

        assert geocoder_settings == {"geocoder_url", "geocoder_api_key", "geocoder_timeout"}

    @pytest.mark.asyncio
    async def test_geocode_success(self):
        stub = ProviderStub((200, BOSTON))
        geocoder = make_geocoder(stub)

        location = await geocoder.geocode("02215")

        assert location.latitude == pytest.approx(42.350846)
        assert location.longitude == pytest.approx(-71.105382)
        assert location.city == "Boston"
        assert location.state == "MA"
        assert location.zipcode == "02215"
        assert location.country == "US"
        assert location.formatted_address == "233 Bay State Rd, Boston, MA 02215, US"
        assert stub.requests[0].url.params["location"] == "02215"
        assert stub.requests[0].url.params["key"] == "test-key"

    @pytest.mark.asyncio
    async def test_transient_status_is_retried(self):
        stub = ProviderStub((503, {}), (200, BOSTON))
        geocoder = make_geocoder(stub)

        location = await geocoder.geocode("02215")

        assert location.city == "Boston"
        assert len(stub.requests) == 2
        assert geocoder.circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_geocoder_error(self):
        stub = ProviderStub((500, {}))
        geocoder = make_geocoder(stub, attempts=3)

        with pytest.raises(GeocoderError):
            await geocoder.geocode("02215")

        assert len(stub.requests) == 3
        assert geocoder.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self):
        stub = ProviderStub(httpx.ConnectError("connection refused"), (200, BOSTON))
        geocoder = make_geocoder(stub)

        location = await geocoder.geocode("02215")

        assert location.state == "MA"
        assert len(stub.requests) == 2

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self):
        stub = ProviderStub((401, {"message": "bad key"}))
        geocoder = make_geocoder(stub)

        with pytest.raises(GeocoderError):
            await geocoder.geocode("02215")

        assert len(stub.requests) == 1

    @pytest.mark.asyncio
    async def test_provider_rejection_in_body(self):
        body = {"info": {"statuscode": 403, "messages": ["Invalid key"]}, "results": []}
        geocoder = make_geocoder(ProviderStub((200, body)))

        with pytest.raises(GeocoderError):
            await geocoder.geocode("02215")

        assert geocoder.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_no_location_is_a_validation_error(self):
        body = {"info": {"statuscode": 0}, "results": [{"locations": []}]}
        geocoder = make_geocoder(ProviderStub((200, body)))

        with pytest.raises(ValidationError, match="Could not geocode"):
            await geocoder.geocode("nowhere")

        assert geocoder.circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_open_circuit_skips_provider(self):
        stub = ProviderStub((200, BOSTON))
        geocoder = make_geocoder(stub)
        for _ in range(geocoder.circuit_breaker.failure_threshold):
            geocoder.circuit_breaker.record_failure()

        with pytest.raises(CircuitBreakerOpenError):
            await geocoder.geocode("02215")

        assert stub.requests == []

    @pytest.mark.asyncio
    async def test_health_check_true_when_reachable(self):
        geocoder = make_geocoder(ProviderStub((200, BOSTON)))

        assert await geocoder.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_false_when_unreachable(self):
        geocoder = make_geocoder(ProviderStub(httpx.ConnectError("down")))

        assert await geocoder.health_check() is False
