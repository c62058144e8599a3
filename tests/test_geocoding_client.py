import httpx
import pytest

from src.housecall.config import settings
from src.housecall.services.geocoding.mapbox_client import (
    AddressNotFoundError,
    GeocodingUnavailableError,
    MapboxGeocoder,
    parse_feature,
)

FEATURE = {
    "center": [18.4241, -33.9249],
    "place_name": "12 Kloof Street, Gardens, Cape Town, 8001, South Africa",
    "context": [
        {"id": "postcode.123", "text": "8001"},
        {"id": "place.456", "text": "Cape Town"},
        {"id": "country.789", "text": "South Africa"},
    ],
}


def _geocoder(handler, **kwargs) -> MapboxGeocoder:
    return MapboxGeocoder(
        access_token="test-token",
        base_url="https://geocoder.test",
        max_retries=kwargs.pop("max_retries", 2),
        backoff_seconds=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_geocode_parses_first_feature() -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"features": [FEATURE]})

    result = _geocoder(handler).geocode("12 Kloof Street", "za")

    assert result.coordinate.latitude == -33.9249
    assert result.coordinate.longitude == 18.4241
    assert result.address.city == "Cape Town"
    assert result.address.postal_code == "8001"
    assert result.address.line1 == "12 Kloof Street"

    request = requests[0]
    assert "/geocoding/v5/mapbox.places/12%20Kloof%20Street.json" in str(request.url)
    assert request.url.params["country"] == "za"
    assert request.url.params["access_token"] == "test-token"


def test_no_features_means_address_not_found() -> None:
    geocoder = _geocoder(lambda request: httpx.Response(200, json={"features": []}))
    with pytest.raises(AddressNotFoundError):
        geocoder.geocode("nowhere")


def test_not_found_status() -> None:
    geocoder = _geocoder(lambda request: httpx.Response(404, json={"message": "Not Found"}))
    with pytest.raises(AddressNotFoundError):
        geocoder.geocode("nowhere")


def test_rejected_token_is_unavailable_without_retry() -> None:
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(401, json={"message": "Not Authorized"})

    with pytest.raises(GeocodingUnavailableError):
        _geocoder(handler).geocode("12 Kloof Street")
    assert len(calls) == 1


def test_server_errors_are_retried() -> None:
    responses = [httpx.Response(503), httpx.Response(200, json={"features": [FEATURE]})]

    result = _geocoder(lambda request: responses.pop(0)).geocode("12 Kloof Street")

    assert result.address.city == "Cape Town"
    assert responses == []


def test_persistent_server_errors_become_unavailable() -> None:
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    with pytest.raises(GeocodingUnavailableError):
        _geocoder(handler, max_retries=2).geocode("12 Kloof Street")
    assert len(calls) == 3


def test_timeout_becomes_unavailable() -> None:
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(GeocodingUnavailableError):
        _geocoder(handler, max_retries=1).geocode("12 Kloof Street")


def test_malformed_body_is_unavailable() -> None:
    geocoder = _geocoder(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(GeocodingUnavailableError):
        geocoder.geocode("12 Kloof Street")


def test_missing_token_is_unavailable(monkeypatch) -> None:
    monkeypatch.setattr(settings, "mapbox_access_token", None)
    geocoder = MapboxGeocoder(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    with pytest.raises(GeocodingUnavailableError):
        geocoder.geocode("12 Kloof Street")


def test_blank_address_is_not_found() -> None:
    geocoder = _geocoder(lambda request: httpx.Response(200, json={"features": [FEATURE]}))
    with pytest.raises(AddressNotFoundError):
        geocoder.geocode("   ")


def test_parse_feature_defaults_country() -> None:
    feature = {"center": [18.4241, -33.9249], "place_name": "Somewhere"}
    result = parse_feature(feature, "Somewhere", "South Africa")
    assert result.address.country == "South Africa"
    assert result.address.city == ""
