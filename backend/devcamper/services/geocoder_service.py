"""
DevCamper Backend — MapQuest Geocoder Implementation
=====================================================

What:  Concrete GeocoderService backed by the MapQuest geocoding API.
How:   httpx.AsyncClient request per lookup, wrapped with tenacity retries
       (exponential backoff + jitter) for transient failures and a circuit
       breaker that fails fast while the provider is down.
Who:   Singleton `geocoder_service` used by BootcampService.

Resilience Strategy:
    1. Tenacity retry for transport errors, HTTP 429 and 5xx
    2. Circuit breaker (CLOSED → OPEN → HALF_OPEN) around the whole lookup
    3. Per-request timeout from settings.geocoder_timeout

MapQuest response shape (trimmed):
    {"info": {"statuscode": 0, "messages": []},
     "results": [{"locations": [{
         "street": "233 Bay State Rd", "adminArea5": "Boston",
         "adminArea3": "MA", "adminArea1": "US", "postalCode": "02215",
         "latLng": {"lat": 42.35, "lng": -71.1}}]}]}
"""

import logging
import time
import uuid
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from devcamper.config import settings
from devcamper.exceptions import CircuitBreakerOpenError, GeocoderError, ValidationError
from devcamper.services.geocoder_base import GeocoderService, GeoLocation

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker guarding calls to the geocoding provider.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN
        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN
        HALF_OPEN (testing recovery)
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Not thread-safe; uvicorn async workers share a single process.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Returns:
            True if the request can proceed (CLOSED, or HALF_OPEN after timeout).

        Raises:
            CircuitBreakerOpenError if OPEN and the recovery timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Geocoder circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Geocoder circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Geocoder circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Geocoder circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


# ══════════════════════════════════════════════════════════════════════════
# MapQuest Geocoder
# ══════════════════════════════════════════════════════════════════════════

class MapQuestGeocoder(GeocoderService):
    """
    MapQuest geocoding provider.

    Error Handling Chain:
        HTTP call fails transiently → tenacity retries (default 3 attempts)
        → retries exhausted → circuit breaker failure + GeocoderError (503)
        → threshold reached → later calls rejected with CircuitBreakerOpenError
        Provider answers but finds nothing → ValidationError (400); this is a
        bad address, not an outage, so the breaker records a success.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        min_wait: Optional[float] = None,
        max_wait: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.geocoder_api_key if api_key is None else api_key
        self.base_url = base_url or settings.geocoder_url
        self.timeout = timeout or settings.geocoder_timeout
        self.max_attempts = max_attempts or settings.retry_max_attempts
        self.min_wait = settings.retry_min_wait if min_wait is None else min_wait
        self.max_wait = settings.retry_max_wait if max_wait is None else max_wait
        # Test hook: httpx.MockTransport
        self.transport = transport

        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "MapQuestGeocoder initialized (url=%s, attempts=%d, "
            "circuit_breaker(threshold=%d, recovery=%ds))",
            self.base_url,
            self.max_attempts,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def geocode(self, address: str) -> GeoLocation:
        """
        Resolve `address` (postal code or full address) to a GeoLocation.

        Flow:
            1. Check circuit breaker → may raise CircuitBreakerOpenError
            2. GET <geocoder_url>?key=...&location=<address> with retries
            3. Record success/failure in circuit breaker
            4. Map the first location to GeoLocation
        """
        request_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        logger.info("[%s] Geocoding address: %s", request_id, address)
        started = time.perf_counter()

        try:
            payload = await self._fetch_with_retry(address)
        except httpx.HTTPError as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Geocoder request failed: %s", request_id, str(e))
            raise GeocoderError(
                message="Geocoding failed after multiple attempts. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"request_id": request_id, "attempts": self.max_attempts},
            )

        info = payload.get("info") or {}
        if info.get("statuscode", 0) != 0:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Geocoder rejected request: status=%s messages=%s",
                request_id,
                info.get("statuscode"),
                info.get("messages"),
            )
            raise GeocoderError(
                message="Geocoding provider rejected the request.",
                context={"request_id": request_id, "provider_status": info.get("statuscode")},
            )

        self.circuit_breaker.record_success()
        location = self._first_location(payload)
        if location is None:
            raise ValidationError(
                message=f"Could not geocode address '{address}'",
                field="address",
            )

        logger.info(
            "[%s] Geocoded in %.0fms → (%.5f, %.5f)",
            request_id,
            (time.perf_counter() - started) * 1000,
            location.latitude,
            location.longitude,
        )
        return location

    async def _fetch_with_retry(self, address: str) -> Dict[str, Any]:
        retrying = AsyncRetrying(
            retry=retry_if_exception(_is_transient),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.min_wait,
                max=self.max_wait,
                jitter=1 if self.max_wait else 0,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async with self._client() as client:
            async for attempt in retrying:
                with attempt:
                    response = await client.get(
                        self.base_url,
                        params={"key": self.api_key, "location": address, "maxResults": 1},
                    )
                    response.raise_for_status()
        return response.json()

    @staticmethod
    def _first_location(payload: Dict[str, Any]) -> Optional[GeoLocation]:
        results = payload.get("results") or []
        locations = results[0].get("locations") if results else None
        if not locations:
            return None
        loc = locations[0]
        lat_lng = loc.get("latLng") or loc.get("displayLatLng") or {}
        if "lat" not in lat_lng or "lng" not in lat_lng:
            return None

        street = loc.get("street") or None
        city = loc.get("adminArea5") or None
        state = loc.get("adminArea3") or None
        zipcode = loc.get("postalCode") or None
        country = loc.get("adminArea1") or None
        region = " ".join(part for part in (state, zipcode) if part)
        formatted = ", ".join(part for part in (street, city, region, country) if part)

        return GeoLocation(
            latitude=float(lat_lng["lat"]),
            longitude=float(lat_lng["lng"]),
            formatted_address=formatted or None,
            street=street,
            city=city,
            state=state,
            zipcode=zipcode,
            country=country,
        )

    async def health_check(self) -> bool:
        """Probe the provider with a cheap lookup; False on any failure."""
        try:
            async with self._client() as client:
                response = await client.get(
                    self.base_url,
                    params={"key": self.api_key, "location": "10001", "maxResults": 1},
                )
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning("Geocoder health check failed: %s", str(e))
            return False


geocoder_service = MapQuestGeocoder()
