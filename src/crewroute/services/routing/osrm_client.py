"""HTTP client for interacting with OSRM services."""

from __future__ import annotations

import logging
import time
from typing import Optional, Sequence

import httpx

from ...config import settings
from .distance import DistanceMatrix, DistanceProviderError, Leg, validate_matrix

METERS_PER_MILE = 1609.344

logger = logging.getLogger(__name__)


class OSRMClient:
    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url or "").rstrip("/")
        if not self.base_url:
            raise DistanceProviderError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self.timeout = timeout if timeout is not None else settings.distance_timeout_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            transport=self._transport,
        )

    def _get_json(self, url: str, params: dict) -> dict:
        """GET with retries and backoff; every failure surfaces as ``DistanceProviderError``."""

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()
                    if not isinstance(data, dict):
                        raise DistanceProviderError(
                            f"OSRM returned an unexpected {type(data).__name__} body for {url}"
                        )
                    if data.get("code", "Ok") != "Ok":
                        raise DistanceProviderError(
                            f"OSRM request failed: {data.get('message', data.get('code'))}"
                        )
                    return data
                except httpx.HTTPStatusError as e:
                    # 4xx other than rate limiting will not improve on retry
                    if e.response.status_code < 500 and e.response.status_code != 429:
                        raise DistanceProviderError(
                            f"OSRM returned HTTP {e.response.status_code} for {url}"
                        ) from e
                    attempt += 1
                    if attempt > self.max_retries:
                        raise DistanceProviderError(
                            f"OSRM returned HTTP {e.response.status_code} after {attempt} attempts"
                        ) from e
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"OSRM request timed out after {self.max_retries} retries: {e}")
                        raise DistanceProviderError(f"OSRM request timed out: {e}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM request timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.TransportError, OSError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise DistanceProviderError(
                            f"Failed to connect to OSRM service at {self.base_url}: {e}"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
                except ValueError as e:
                    raise DistanceProviderError(f"OSRM returned an unreadable response: {e}") from e
        finally:
            client.close()

    def table(self, coordinates: Sequence[tuple[float, float]]) -> dict:
        """Get the raw distance/duration table (meters/seconds) for (lat, lon) coordinates."""

        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required for OSRM table.")
        coordinate_str = ";".join(f"{lon},{lat}" for lat, lon in coordinates)
        url = f"{self.base_url}/table/v1/{self.profile}/{coordinate_str}"
        data = self._get_json(url, {"annotations": "duration,distance"})
        if "durations" not in data or "distances" not in data:
            raise DistanceProviderError("OSRM response missing durations/distances.")
        return data

    def route(self, coordinates: Sequence[tuple[float, float]]) -> dict:
        """Get the route summary between waypoints using the OSRM route endpoint."""

        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required for OSRM route.")
        coordinate_str = ";".join(f"{lon},{lat}" for lat, lon in coordinates)
        url = f"{self.base_url}/route/v1/{self.profile}/{coordinate_str}"
        data = self._get_json(url, {"overview": "false", "steps": "false"})
        if not data.get("routes"):
            raise DistanceProviderError("OSRM route response contained no routes.")
        return data


def _convert(rows: list[list[Optional[float]]], factor: float) -> list[list[Optional[float]]]:
    return [[None if value is None else float(value) / factor for value in row] for row in rows]


class OSRMDistanceProvider:
    """``DistanceProvider`` backed by an OSRM server."""

    def __init__(self, client: OSRMClient | None = None) -> None:
        self.client = client or OSRMClient()

    def matrix(self, coordinates: Sequence[tuple[float, float]]) -> DistanceMatrix:
        raw = self.client.table(coordinates)
        matrix = DistanceMatrix(
            distances=_convert(raw["distances"], METERS_PER_MILE),
            durations=_convert(raw["durations"], 60.0),
            source="provider",
        )
        validate_matrix(matrix, len(coordinates))
        return matrix

    def leg(self, origin: tuple[float, float], destination: tuple[float, float]) -> Leg:
        data = self.client.route([origin, destination])
        best = data["routes"][0]
        return Leg(
            distance=float(best["distance"]) / METERS_PER_MILE,
            duration=float(best["duration"]) / 60.0,
            source="provider",
        )


def check_health(base_url: str | None = None, transport: httpx.BaseTransport | None = None) -> bool:
    """Check OSRM service health by making a minimal table request."""

    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        client = OSRMClient(base_url=base, max_retries=0, timeout=5.0, transport=transport)
        data = client.table([(52.517037, 13.388860), (52.496891, 13.385983)])
        return isinstance(data.get("durations"), list)
    except (DistanceProviderError, ValueError):
        return False
