"""Imagery client: satellite availability lookups through the credential proxy.

search() never raises. Transport errors, proxy error envelopes and malformed
payloads all degrade to an unavailable SatelliteResult for the query point.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

import httpx

from ..config import Settings, get_settings
from ..log import get_logger
from ..schemas.satellite import SatelliteResult

logger = get_logger("imagery")

SEARCH_PATH = "/api/satellite/search"


class ImageryClient:
    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings or get_settings()
        self._transport = transport

    def search(self, lat: float, lon: float, on_date: Optional[date] = None, limit: Optional[int] = None) -> SatelliteResult:
        limit = limit or self.settings.SATELLITE_RESULT_LIMIT
        target = on_date or datetime.now(timezone.utc).date()
        start = target - timedelta(days=self.settings.SATELLITE_LOOKBACK_DAYS)
        params = {
            "lat": lat,
            "lon": lon,
            "startDate": start.isoformat(),
            "endDate": target.isoformat(),
            "limit": limit,
        }

        try:
            with httpx.Client(
                base_url=self.settings.BACKEND_API_URL,
                timeout=self.settings.HTTP_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                resp = client.get(SEARCH_PATH, params=params)

            if not resp.is_success:
                logger.warning(f"Satellite search failed ({resp.status_code}): {self._error_message(resp)}")
                return SatelliteResult.unavailable(lat, lon, target.isoformat())

            result = SatelliteResult.model_validate(resp.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Satellite imagery unavailable: {e}")
            return SatelliteResult.unavailable(lat, lon, target.isoformat())

        if result.available:
            newest_first = sorted(result.imagery, key=lambda img: img.captured_at, reverse=True)
            result.imagery = newest_first[:limit]
        return result

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        try:
            return resp.json().get("message") or "Imagery search failed"
        except (ValueError, AttributeError):
            return "Imagery search failed"


imagery_client = ImageryClient()
