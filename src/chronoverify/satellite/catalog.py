"""Copernicus Data Space catalogue client used by the credential proxy.

Acquires bearer tokens with the OAuth2 client-credentials grant (cached until
expiry), searches Sentinel products with OData spatial/temporal filters and
fetches product thumbnails. Every failure is raised as a ProxyError subclass
so the HTTP layer can render the error envelope.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import Settings
from ..errors import (
    AuthConfigurationError,
    UpstreamAuthError,
    UpstreamRequestError,
    ValidationError,
    is_network_failure,
)
from ..log import get_logger
from ..schemas.satellite import QueryLocation, SatelliteImage, SatelliteResult
from .token_cache import AccessToken, TokenCache

logger = get_logger("catalog")

ODATA_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
THUMBNAIL_PATH = "/api/satellite/thumbnail/{product_id}"
_PRODUCT_ID_RE = re.compile(r"^[A-Za-z0-9-]+$")


def parse_date_param(value: Optional[str], name: str) -> Optional[datetime]:
    """Accepts YYYY-MM-DD or a full ISO timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO date (YYYY-MM-DD)", error_kind="Invalid parameters")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def build_search_filter(collection: str, lat: float, lon: float, start: datetime, end: datetime) -> str:
    return (
        f"Collection/Name eq '{collection}' "
        f"and OData.CSC.Intersects(area=geography'SRID=4326;POINT({lon} {lat})') "
        f"and ContentDate/Start gt {start.strftime(ODATA_TIME_FORMAT)} "
        f"and ContentDate/Start lt {end.strftime(ODATA_TIME_FORMAT)}"
    )


def _cloud_cover(record: Dict[str, Any]) -> float:
    for attribute in record.get("Attributes") or []:
        if attribute.get("Name") == "cloudCover" and attribute.get("Value") is not None:
            return float(attribute["Value"])
    return float(record.get("CloudCover") or 0)


def record_to_image(record: Dict[str, Any]) -> SatelliteImage:
    product_id = str(record["Id"])
    return SatelliteImage(
        id=product_id,
        name=record.get("Name", product_id),
        date=record["ContentDate"]["Start"],
        cloud_cover=_cloud_cover(record),
        thumbnail=THUMBNAIL_PATH.format(product_id=product_id) if record.get("S3Path") else None,
    )


class CatalogClient:
    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings
        self._transport = transport
        self.token_cache = TokenCache(self.fetch_token, skew_seconds=settings.TOKEN_EXPIRY_SKEW_SECONDS)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, max=4),
        retry=retry_if_exception_type((httpx.ReadError, httpx.RemoteProtocolError)),
        reraise=True,
    )
    def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        with httpx.Client(
            timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            return client.request(method, url, **kwargs)

    def fetch_token(self) -> AccessToken:
        if not self.settings.has_copernicus_credentials:
            raise AuthConfigurationError(
                "Copernicus credentials are not configured: set COPERNICUS_CLIENT_ID and COPERNICUS_CLIENT_SECRET"
            )

        try:
            resp = self._send(
                "POST",
                self.settings.COPERNICUS_TOKEN_URL,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.settings.COPERNICUS_CLIENT_ID,
                    "client_secret": self.settings.COPERNICUS_CLIENT_SECRET,
                },
            )
        except httpx.HTTPError as e:
            raise UpstreamAuthError(f"Authentication failed: {e}", is_network=is_network_failure(e)) from e

        if not resp.is_success:
            raise UpstreamAuthError(f"Authentication failed: {resp.status_code} {resp.reason_phrase}")

        try:
            return AccessToken.model_validate(resp.json())
        except ValueError as e:
            raise UpstreamAuthError("Authentication failed: token response has no access_token") from e

    def authenticate(self) -> str:
        """Fresh token for diagnostics; also refreshes the cache."""
        return self.token_cache.get(force_refresh=True)

    def _authorized_get(self, url: str, error_kind: str, **kwargs) -> httpx.Response:
        for attempt in range(2):
            token = self.token_cache.get()
            try:
                resp = self._send("GET", url, headers={"Authorization": f"Bearer {token}"}, **kwargs)
            except httpx.HTTPError as e:
                raise UpstreamRequestError(
                    f"{error_kind}: {e}", error_kind=error_kind, is_network=is_network_failure(e)
                ) from e

            if resp.status_code == 401 and attempt == 0:
                # token revoked or expired early; refetch once
                self.token_cache.invalidate()
                continue
            if not resp.is_success:
                raise UpstreamRequestError(
                    f"{error_kind}: {resp.status_code} {resp.reason_phrase}", error_kind=error_kind
                )
            return resp
        raise UpstreamRequestError(f"{error_kind}: upstream rejected a fresh token", error_kind=error_kind)

    def search(
        self,
        lat: float,
        lon: float,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> SatelliteResult:
        limit = limit or self.settings.SATELLITE_RESULT_LIMIT
        end = parse_date_param(end_date, "endDate") or datetime.now(timezone.utc).replace(microsecond=0)
        start = parse_date_param(start_date, "startDate") or end - timedelta(days=self.settings.SATELLITE_LOOKBACK_DAYS)

        params = {
            "$filter": build_search_filter(self.settings.SATELLITE_COLLECTION, lat, lon, start, end),
            "$orderby": "ContentDate/Start desc",
            "$top": str(limit),
            "$expand": "Attributes",
        }
        logger.info(f"Catalogue search at ({lat}, {lon}) {start.date()}..{end.date()} limit={limit}")
        resp = self._authorized_get(self.settings.COPERNICUS_CATALOGUE_URL, "Search failed", params=params)

        try:
            records = resp.json().get("value") or []
            imagery = [record_to_image(r) for r in records][:limit]
        except (ValueError, KeyError, TypeError) as e:
            raise UpstreamRequestError(f"Search failed: unexpected catalogue response ({e})") from e

        search_date = end.date().isoformat()
        if not imagery:
            return SatelliteResult.unavailable(lat, lon, search_date)
        return SatelliteResult(
            available=True,
            imagery=imagery,
            location=QueryLocation(lat=lat, lon=lon),
            search_date=search_date,
        )

    def thumbnail(self, product_id: str) -> Tuple[bytes, str]:
        if not _PRODUCT_ID_RE.match(product_id):
            raise ValidationError(f"Invalid product id: {product_id!r}", error_kind="Invalid parameters")

        url = f"{self.settings.COPERNICUS_CATALOGUE_URL}({product_id})/Thumbnail/$value"
        resp = self._authorized_get(url, "Thumbnail fetch failed")
        return resp.content, resp.headers.get("content-type") or "image/png"
