import httpx
import pytest

from chronoverify.errors import (
    NETWORK_HINT,
    AuthConfigurationError,
    UpstreamAuthError,
    UpstreamRequestError,
    ValidationError,
)
from chronoverify.satellite.catalog import CatalogClient, build_search_filter, parse_date_param, record_to_image


def _catalog(settings, fake):
    return CatalogClient(settings, transport=httpx.MockTransport(fake))


def test_search_finds_image_for_point_and_window(settings, fake_copernicus, make_record):
    """
    WHY: The core proxy search must translate a point + date window into an OData query.
    HOW: Search lat 31.5 / lon 34.45 over 2024-10-01..2024-10-23 with limit 3 against one matching record.
    EXPECTED: One image with 5.2% cloud cover, filter and paging sent upstream, bearer token attached.
    """
    fake_copernicus.records = [make_record()]
    result = _catalog(settings, fake_copernicus).search(31.5, 34.45, "2024-10-01", "2024-10-23", 3)

    assert result.available is True
    assert result.count == 1
    image = result.imagery[0]
    assert image.id == "a1b2c3"
    assert image.cloud_cover == 5.2
    assert image.thumbnail == "/api/satellite/thumbnail/a1b2c3"
    assert result.search_date == "2024-10-23"
    assert (result.location.lat, result.location.lon) == (31.5, 34.45)

    request = fake_copernicus.catalogue_requests[0]
    assert request.headers["Authorization"] == "Bearer token-1"
    assert request.url.params["$top"] == "3"
    assert request.url.params["$orderby"] == "ContentDate/Start desc"
    odata_filter = request.url.params["$filter"]
    assert "POINT(34.45 31.5)" in odata_filter
    assert "ContentDate/Start gt 2024-10-01T00:00:00Z" in odata_filter
    assert "ContentDate/Start lt 2024-10-23T00:00:00Z" in odata_filter


def test_search_with_no_matches_is_unavailable(settings, fake_copernicus):
    result = _catalog(settings, fake_copernicus).search(31.5, 34.45, "2024-10-01", "2024-10-23")
    assert result.available is False
    assert result.imagery is None
    assert result.count == 0


def test_token_is_cached_across_searches(settings, fake_copernicus):
    catalog = _catalog(settings, fake_copernicus)
    catalog.search(31.5, 34.45, "2024-10-01", "2024-10-23")
    catalog.search(31.5, 34.45, "2024-09-01", "2024-09-23")
    assert fake_copernicus.token_calls == 1
    assert len(fake_copernicus.catalogue_requests) == 2


def test_unauthorized_search_refetches_token_once(settings, fake_copernicus, make_record):
    fake_copernicus.records = [make_record()]
    statuses = iter([401, 200])

    def handler(request):
        if str(request.url) != settings.COPERNICUS_TOKEN_URL:
            fake_copernicus.search_status = next(statuses)
        return fake_copernicus(request)

    result = CatalogClient(settings, transport=httpx.MockTransport(handler)).search(31.5, 34.45)

    assert result.available is True
    assert fake_copernicus.token_calls == 2
    assert fake_copernicus.catalogue_requests[-1].headers["Authorization"] == "Bearer token-2"


def test_upstream_error_status_is_search_failure(settings, fake_copernicus):
    fake_copernicus.search_status = 503
    with pytest.raises(UpstreamRequestError) as exc:
        _catalog(settings, fake_copernicus).search(31.5, 34.45)
    assert exc.value.to_envelope()["error"] == "Search failed"
    assert exc.value.status_code == 500


def test_missing_credentials(settings, fake_copernicus):
    settings.COPERNICUS_CLIENT_SECRET = None
    with pytest.raises(AuthConfigurationError):
        _catalog(settings, fake_copernicus).search(31.5, 34.45)
    assert fake_copernicus.requests == []


def test_connect_error_carries_network_hint(settings, fake_copernicus):
    fake_copernicus.fail_with = httpx.ConnectError
    with pytest.raises(UpstreamAuthError) as exc:
        _catalog(settings, fake_copernicus).authenticate()
    assert exc.value.is_network is True
    assert exc.value.to_envelope()["details"] == NETWORK_HINT


def test_thumbnail_defaults_content_type(settings, fake_copernicus):
    fake_copernicus.thumbnail_type = None
    content, content_type = _catalog(settings, fake_copernicus).thumbnail("a1b2c3")
    assert content == fake_copernicus.thumbnail_body
    assert content_type == "image/png"
    assert fake_copernicus.catalogue_requests[0].url.path.endswith("(a1b2c3)/Thumbnail/$value")


def test_thumbnail_rejects_odd_product_ids(settings, fake_copernicus):
    with pytest.raises(ValidationError):
        _catalog(settings, fake_copernicus).thumbnail("a1')/../x")
    assert fake_copernicus.requests == []


def test_record_without_s3_path_has_no_thumbnail(make_record):
    assert record_to_image(make_record(s3=False)).thumbnail is None


def test_parse_date_param():
    assert parse_date_param(None, "startDate") is None
    assert parse_date_param("2024-10-23", "endDate").isoformat() == "2024-10-23T00:00:00+00:00"
    assert parse_date_param("2024-10-23T10:00:00Z", "endDate").hour == 10
    with pytest.raises(ValidationError):
        parse_date_param("23/10/2024", "endDate")


def test_build_search_filter_uses_lon_lat_order():
    start = parse_date_param("2024-10-01", "s")
    end = parse_date_param("2024-10-23", "e")
    odata_filter = build_search_filter("SENTINEL-2", 10.0, 20.0, start, end)
    assert odata_filter.startswith("Collection/Name eq 'SENTINEL-2'")
    assert "POINT(20.0 10.0)" in odata_filter


def test_repeated_search_is_stable(settings, fake_copernicus, make_record):
    fake_copernicus.records = [
        make_record(),
        make_record(product_id="d4e5", start="2024-10-10T08:30:00Z", cloud=12.0, s3=False),
    ]
    catalog = _catalog(settings, fake_copernicus)

    first = catalog.search(31.5, 34.45, "2024-10-01", "2024-10-23", 3)
    second = catalog.search(31.5, 34.45, "2024-10-01", "2024-10-23", 3)

    assert first.imagery == second.imagery
    assert first == second
