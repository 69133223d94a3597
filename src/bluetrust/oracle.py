"""
Verification Oracle

Produces vegetation/impact assessments for a claimed location and area.
The simulated oracle derives its readings from known reference sites and an
injected random source; the HTTP oracle delegates to a remote-sensing
service behind the same contract.
"""

import asyncio
import logging
import math
import random
from datetime import date, timedelta
from typing import Protocol, Sequence

import httpx

from bluetrust.config import DEFAULT_REFERENCE_SITES, EngineSettings
from bluetrust.enums import ChangeType, OracleBackend, SiteTrend
from bluetrust.errors import OracleUnavailable
from bluetrust.geo import nearest_site, validate_coordinates
from bluetrust.types import (
    Assessment,
    ChangeDetection,
    ImageryInfo,
    ReferenceSite,
    TimeSeriesPoint,
    utcnow,
)


logger = logging.getLogger(__name__)


CHANGE_DESCRIPTIONS = {
    ChangeType.RESTORATION: "New vegetation growth detected, consistent with mangrove restoration activities",
    ChangeType.DEFORESTATION: "Vegetation loss detected in monitored area",
    ChangeType.NO_CHANGE: "Stable vegetation cover with no significant changes",
    ChangeType.SEASONAL_VARIATION: "Changes appear to be seasonal vegetation patterns",
}


class VerificationOracle(Protocol):
    """Evidence source contract"""

    async def assess(self, latitude: float, longitude: float, claimed_area_hectares: float) -> Assessment:
        """
        Assess vegetation at a location.

        Raises:
            OracleUnavailable: Evidence source failed
        """
        ...


def js_round(value: float) -> int:
    """Round half up"""
    return int(math.floor(value + 0.5))


# ============================================================================
# Simulated oracle
# ============================================================================


class SimulatedOracle:
    """
    Oracle backed by reference-site baselines and a seedable random source.

    Given the same rng seed and the same call sequence, every assessment is
    identical, which lets tests assert exact outputs.
    """

    source_name = "BlueTrust Satellite Simulation"

    def __init__(
        self,
        settings: EngineSettings | None = None,
        rng: random.Random | None = None,
        sites: Sequence[ReferenceSite] | None = None,
    ):
        """
        Initialize simulated oracle

        Args:
            settings: Engine settings (index range, change distribution, latency)
            rng: Random source (defaults to one seeded from settings.oracle_seed)
            sites: Reference sites (defaults to DEFAULT_REFERENCE_SITES)
        """
        self.settings = settings or EngineSettings()
        self.rng = rng or random.Random(self.settings.oracle_seed)
        self.sites = list(sites) if sites is not None else list(DEFAULT_REFERENCE_SITES)

    async def assess(self, latitude: float, longitude: float, claimed_area_hectares: float) -> Assessment:
        if self.settings.oracle_latency_seconds:
            await asyncio.sleep(self.settings.oracle_latency_seconds)
        assessment = self.generate(latitude, longitude, claimed_area_hectares)
        logger.info(
            f"Simulated assessment at ({latitude}, {longitude}): "
            f"index={assessment.vegetation_index} change={assessment.change_detection.type.value}"
        )
        return assessment

    def generate(self, latitude: float, longitude: float, claimed_area_hectares: float) -> Assessment:
        """Compute an assessment synchronously"""
        validate_coordinates(latitude, longitude)

        match = nearest_site(latitude, longitude, self.sites, self.settings.oracle_match_tolerance_km)
        if match is not None:
            site, distance = match
            base_index = float(site.vegetation_index)
            trend = site.trend
            confidence = site.confidence
            site_name, distance_km = site.name, round(distance, 2)
        else:
            # No reference site nearby: generic baseline
            base_index = 70 + self.rng.random() * 20
            trend = SiteTrend.STABLE
            confidence = 0.85
            site_name, distance_km = None, None

        vegetation_index = self._vegetation_index(base_index, trend, claimed_area_hectares)
        change = self._detect_change()

        return Assessment(
            latitude=latitude,
            longitude=longitude,
            vegetation_index=vegetation_index,
            confidence=confidence,
            change_detection=change,
            area_verified=claimed_area_hectares,
            nearest_site=site_name,
            distance_km=distance_km,
            imagery=ImageryInfo(
                resolution="10m",
                cloud_cover=self.rng.random() * 20,
                acquisition_date=utcnow() - timedelta(days=self.rng.random() * 30),
            ),
            source=self.source_name,
        )

    def _vegetation_index(self, base_index: float, trend: SiteTrend, area: float) -> int:
        # Large claimed areas are discounted, down to 90% of the baseline
        area_factor = max(0.9, 1 - area * 0.02)

        if trend == SiteTrend.INCREASING:
            base_index += self.rng.random() * 5
        elif trend == SiteTrend.DECREASING:
            base_index -= self.rng.random() * 3

        noise = 0.95 + self.rng.random() * 0.1
        index = js_round(base_index * area_factor * noise)
        return max(self.settings.index_floor, min(self.settings.index_ceiling, index))

    def _detect_change(self) -> ChangeDetection:
        weights = self.settings.change_distribution
        total = sum(weights.values())
        draw = self.rng.random()

        cumulative = 0.0
        for change_type, weight in weights.items():
            cumulative += weight / total
            if draw <= cumulative:
                return ChangeDetection(
                    type=change_type,
                    confidence=0.8 + self.rng.random() * 0.15,
                    area_changed_hectares=self.rng.random() * 2,
                    description=CHANGE_DESCRIPTIONS[change_type],
                )

        # Float rounding left the draw past the last bucket
        return ChangeDetection(
            type=ChangeType.NO_CHANGE,
            confidence=0.85,
            area_changed_hectares=0.0,
            description="No significant changes detected",
        )

    def time_series(self, months: int = 12, today: date | None = None) -> list[TimeSeriesPoint]:
        """
        Monthly vegetation readings for the last `months` months.

        Readings follow a gradual growth trend with a seasonal component and
        noise, clamped to the plausible index range.
        """
        today = today or date.today()
        base_index = 70 + self.rng.random() * 15
        points = []

        for i in range(months):
            offset = months - i
            year, month = divmod(today.month - 1 - offset, 12)
            point_date = date(today.year + year, month + 1, 1)

            growth = i * 0.5
            seasonal = math.sin((i / 12) * 2 * math.pi) * 3
            noise = (self.rng.random() - 0.5) * 2
            index = max(
                self.settings.index_floor,
                min(self.settings.index_ceiling, base_index + growth + seasonal + noise),
            )

            points.append(
                TimeSeriesPoint(
                    date=point_date,
                    vegetation_index=js_round(index),
                    confidence=0.85 + self.rng.random() * 0.1,
                )
            )

        return points


# ============================================================================
# Remote oracle
# ============================================================================


class HttpVerificationOracle:
    """
    Oracle backed by a remote-sensing inference service.

    POSTs the claimed location to `{base_url}/assessments` and validates the
    JSON response as an Assessment.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = headers or {}
        self._transport = transport

    async def assess(self, latitude: float, longitude: float, claimed_area_hectares: float) -> Assessment:
        payload = {
            "latitude": latitude,
            "longitude": longitude,
            "area_hectares": claimed_area_hectares,
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post("/assessments", json=payload, headers=self.headers)
                response.raise_for_status()
                return Assessment.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            logger.error(f"Oracle returned HTTP {e.response.status_code}: {e.response.text}")
            raise OracleUnavailable(
                f"Oracle returned HTTP {e.response.status_code}", status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Oracle request failed: {str(e)}")
            raise OracleUnavailable(f"Oracle request failed: {str(e)}") from e
        except ValueError as e:
            # Undecodable JSON or a body that fails Assessment validation
            logger.error(f"Oracle returned a malformed assessment: {str(e)}")
            raise OracleUnavailable("Oracle returned a malformed assessment") from e


def build_oracle(settings: EngineSettings) -> VerificationOracle:
    """Create the oracle selected by settings.oracle_backend"""
    if settings.oracle_backend == OracleBackend.HTTP:
        return HttpVerificationOracle(settings.oracle_url, timeout=settings.oracle_timeout_seconds)
    return SimulatedOracle(settings)
