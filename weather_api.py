import logging

import httpx

from errors import NotFound, UpstreamError
from models import CurrentConditions, ResolvedPlace

logger = logging.getLogger(__name__)

GEO_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"


# Ordered, de-duplicated lookups for a query: the full text, then the part before the first comma.
def candidate_queries(query: str) -> list[str]:
    """
    Saved labels are themselves geocoder output ("Halifax, Nova Scotia, Canada"),
    which the geocoder often cannot match as a whole; the bare city name usually can.
    """
    raw = (query or "").strip()
    candidates = [raw, raw.split(",", 1)[0].strip()]
    return [c for c in dict.fromkeys(candidates) if c]


# Joins name, region and country with ", ", skipping empty parts.
def format_display_name(match: dict) -> str:
    parts = (match.get("name"), match.get("admin1"), match.get("country"))
    return ", ".join(str(p).strip() for p in parts if p and str(p).strip())


# Queries the geocoding API and returns the raw matches (possibly empty).
async def search_locations(client: httpx.AsyncClient, name: str, count: int = 1, url: str = GEO_URL) -> list[dict]:
    params = {"name": name, "count": count, "language": "en", "format": "json"}
    try:
        response = await client.get(url, params=params)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise UpstreamError(f"Geocoding request failed: {e}") from e
    if not isinstance(data, dict):
        raise UpstreamError("Geocoding response was not an object.")
    results = data.get("results") or []
    if not isinstance(results, list):
        raise UpstreamError("Geocoding results were not a list.")
    return results


class PlaceResolver:
    def __init__(self, client: httpx.AsyncClient, geo_url: str = GEO_URL):
        self.client = client
        self.geo_url = geo_url

    async def resolve(self, query: str) -> ResolvedPlace:
        """
        Try each candidate in order and return the first match.
        A failed or empty lookup only moves on to the next candidate;
        NotFound is raised once every candidate is exhausted.
        """
        for candidate in candidate_queries(query):
            try:
                matches = await search_locations(self.client, candidate, count=1, url=self.geo_url)
            except UpstreamError as e:
                logger.warning("Geocoding candidate %r failed: %s", candidate, e)
                continue
            if not matches:
                logger.info("No geocoding match for candidate %r", candidate)
                continue

            first = matches[0]
            if not isinstance(first, dict):
                logger.warning("Malformed geocoding match for %r: %r", candidate, first)
                continue
            try:
                place = ResolvedPlace(
                    display_name=format_display_name(first),
                    latitude=float(first["latitude"]),
                    longitude=float(first["longitude"]),
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Malformed geocoding match for %r: %s", candidate, e)
                continue
            logger.debug("Resolved %r via %r -> %s", query, candidate, place)
            return place

        raise NotFound()


# Turns the forecast API's "current_weather" block into CurrentConditions.
def parse_current_weather(data) -> CurrentConditions:
    try:
        current = data["current_weather"]
        return CurrentConditions(
            temperature_c=float(current["temperature"]),
            wind_speed_kmh=float(current["windspeed"]),
            wind_direction_deg=float(current["winddirection"]),
            weather_code=int(current["weathercode"]),
            observed_at=str(current["time"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise UpstreamError() from e


class WeatherClient:
    """Current conditions for a coordinate pair. Every call hits the network."""

    def __init__(self, client: httpx.AsyncClient, forecast_url: str = FORECAST_URL):
        self.client = client
        self.forecast_url = forecast_url

    async def fetch_current(self, latitude: float, longitude: float) -> CurrentConditions:
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "current_weather": "true",
            "timezone": "auto",
        }
        try:
            response = await self.client.get(self.forecast_url, params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Weather request for (%s, %s) failed: %s", latitude, longitude, e)
            raise UpstreamError() from e
        return parse_current_weather(data)
