"""HTTP client for the Mapbox forward geocoding API."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from ...config import settings
from ...models.domain import Address, Coordinate

logger = logging.getLogger(__name__)


class GeocodingError(Exception):
    """Base class for geocoding failures."""


class AddressNotFoundError(GeocodingError):
    """The geocoder answered but found no match for the address."""


class GeocodingUnavailableError(GeocodingError):
    """The geocoder is not configured, timed out or is unreachable."""


@dataclass(frozen=True, slots=True)
class GeocodeResult:
    coordinate: Coordinate
    address: Address


def _context_text(feature: dict, prefix: str) -> str:
    for item in feature.get("context") or []:
        if str(item.get("id", "")).startswith(prefix):
            return str(item.get("text") or "")
    return ""


def parse_feature(feature: dict, query: str, default_country: str) -> GeocodeResult:
    """Build a GeocodeResult from a Mapbox feature."""

    center = feature.get("center")
    if not center or len(center) < 2:
        raise AddressNotFoundError(f"No coordinates returned for '{query}'.")
    try:
        coordinate = Coordinate(latitude=float(center[1]), longitude=float(center[0]))
    except (TypeError, ValueError) as exc:
        raise AddressNotFoundError(f"Invalid coordinates returned for '{query}': {center}") from exc

    place_name = str(feature.get("place_name") or query)
    address = Address(
        line1=place_name.split(",")[0].strip() or query,
        city=_context_text(feature, "place.").strip(),
        country=_context_text(feature, "country.").strip() or default_country,
        postal_code=_context_text(feature, "postcode.").strip(),
        coordinate=coordinate,
        full_address=place_name,
    )
    return GeocodeResult(coordinate=coordinate, address=address)


class MapboxGeocoder:
    def __init__(
        self,
        access_token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.access_token = access_token or settings.mapbox_access_token
        self.base_url = (base_url or settings.mapbox_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.geocoder_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.geocoder_max_retries
        self.backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else settings.geocoder_backoff_seconds
        )
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            transport=self._transport,
        )

    def geocode(self, address_text: str, country_hint: str | None = None) -> GeocodeResult:
        """Resolve free-form address text to its best match.

        Raises AddressNotFoundError when nothing matches and
        GeocodingUnavailableError when the service cannot be used.
        """
        if not self.access_token:
            raise GeocodingUnavailableError("Mapbox access token is not configured.")
        query = address_text.strip()
        if not query:
            raise AddressNotFoundError("Empty address provided.")

        url = f"{self.base_url}/geocoding/v5/mapbox.places/{quote(query, safe='')}.json"
        params = {"access_token": self.access_token, "limit": 1}
        country = country_hint or settings.default_country_code
        if country:
            params["country"] = country

        with self._get_client() as client:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    if response.status_code == 404:
                        raise AddressNotFoundError(f"Could not find address '{query}'.")
                    response.raise_for_status()
                    payload = response.json()
                    break
                except httpx.HTTPStatusError as exc:
                    status_code = exc.response.status_code
                    if status_code in (401, 403):
                        raise GeocodingUnavailableError(
                            f"Mapbox rejected the access token (HTTP {status_code})."
                        ) from exc
                    attempt += 1
                    if attempt > self.max_retries:
                        raise GeocodingUnavailableError(
                            f"Mapbox geocoding failed with HTTP {status_code}."
                        ) from exc
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"Geocoding timed out after {self.max_retries} retries: {exc}")
                        raise GeocodingUnavailableError("Geocoding request timed out.") from exc
                    time.sleep(self.backoff_seconds * (2 ** (attempt - 1)))
                except httpx.TransportError as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise GeocodingUnavailableError(f"Geocoding service unreachable: {exc}") from exc
                    time.sleep(self.backoff_seconds * attempt)
                except ValueError as exc:
                    raise GeocodingUnavailableError("Mapbox returned a malformed response.") from exc

        features = payload.get("features") or []
        if not features:
            raise AddressNotFoundError(f"Could not find address '{query}'.")
        return parse_feature(features[0], query, settings.default_country_name)
