import os

import httpx
import pytest

# Module-level singletons (tracer, llm_client) read settings at import time
os.environ.setdefault("MLFLOW_ENABLE_TRACING", "false")

from chronoverify.config import Settings
from chronoverify.schemas.evidence import LocationEstimate, MediaFile, TimeEstimate
from chronoverify.schemas.outputs import ReportDraft, ReportEvidence, ReportLocation

TOKEN_URL = "https://identity.test/token"
CATALOGUE_URL = "https://catalogue.test/odata/v1/Products"


@pytest.fixture
def settings() -> Settings:
    """Isolated settings: never reads .env, never points at real services."""
    return Settings(
        _env_file=None,
        OPENAI_API_KEY="sk-test",
        COPERNICUS_CLIENT_ID="client-id",
        COPERNICUS_CLIENT_SECRET="client-secret",
        COPERNICUS_TOKEN_URL=TOKEN_URL,
        COPERNICUS_CATALOGUE_URL=CATALOGUE_URL,
        BACKEND_API_URL="http://proxy.test",
        MLFLOW_ENABLE_TRACING=False,
    )


@pytest.fixture
def media() -> MediaFile:
    return MediaFile(data=b"\x89PNG\r\n\x1a\nfake", mime_type="image/png", name="street.png")


@pytest.fixture
def location() -> LocationEstimate:
    return LocationEstimate(
        address="Omar Al-Mukhtar Street, Gaza City",
        latitude=31.5017,
        longitude=34.4668,
        confidence_score=72,
        accuracy_tier="neighborhood",
    )


@pytest.fixture
def time_estimate() -> TimeEstimate:
    return TimeEstimate(
        time_of_day_range="14:00-16:00",
        confidence_score=65,
        primary_method="shadows",
        shadow_direction="north-east",
        lighting_quality="harsh afternoon",
        reasoning="Shadows are roughly half the height of the lamp posts and fall to the north-east.",
    )


@pytest.fixture
def report_draft() -> ReportDraft:
    return ReportDraft(
        verdict="Verified",
        confidence_score=78,
        estimated_location=ReportLocation(address="Gaza City", latitude=31.5017, longitude=34.4668),
        estimated_time="14:00-16:00",
        summary="The street matches Gaza City. Shadows place the capture in mid-afternoon.",
        evidence=ReportEvidence(
            visual_clues=["Arabic shop signage", "four-storey concrete blocks"],
            location_analysis="Signage and building style match the Rimal district.",
            temporal_analysis="Shadow length implies a solar elevation of about 40 degrees.",
            satellite_analysis="No satellite imagery available",
        ),
    )


def catalogue_record(product_id="a1b2c3", start="2024-10-15T08:34:21Z", cloud=5.2, s3=True) -> dict:
    record = {
        "Id": product_id,
        "Name": f"S2A_MSIL2A_{product_id}.SAFE",
        "ContentDate": {"Start": start, "End": start},
        "Attributes": [{"Name": "cloudCover", "Value": cloud}],
    }
    if s3:
        record["S3Path"] = f"/eodata/Sentinel-2/{product_id}"
    return record


class FakeCopernicus:
    """
    httpx.MockTransport handler standing in for the identity provider and catalogue.
    Records every request so tests can assert on upstream traffic.
    """

    def __init__(self, records=None, token_expires_in=600):
        self.records = records or []
        self.token_expires_in = token_expires_in
        self.requests = []
        self.token_calls = 0
        self.search_status = 200
        self.thumbnail_body = b"\xff\xd8jpeg-bytes"
        self.thumbnail_type = "image/jpeg"
        self.fail_with = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with(f"{self.fail_with.__name__}: upstream unreachable", request=request)

        if str(request.url) == TOKEN_URL:
            self.token_calls += 1
            return httpx.Response(200, json={"access_token": f"token-{self.token_calls}", "expires_in": self.token_expires_in})

        if request.url.path.endswith("/Thumbnail/$value"):
            headers = {"content-type": self.thumbnail_type} if self.thumbnail_type else {}
            return httpx.Response(200, content=self.thumbnail_body, headers=headers)

        if self.search_status != 200:
            return httpx.Response(self.search_status)
        return httpx.Response(200, json={"value": self.records})

    @property
    def catalogue_requests(self):
        return [r for r in self.requests if str(r.url) != TOKEN_URL]


@pytest.fixture
def fake_copernicus():
    return FakeCopernicus()


@pytest.fixture
def make_record():
    return catalogue_record
