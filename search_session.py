import logging
from dataclasses import dataclass
from enum import Enum

from errors import EmptyQuery, WeatherAppError
from location_store import LocationStore
from models import CurrentConditions, ResolvedPlace, SaveResult
from weather_api import PlaceResolver, WeatherClient

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(frozen=True)
class SearchResult:
    place: ResolvedPlace
    conditions: CurrentConditions

    def to_dict(self):
        return {"place": self.place.to_dict(), "conditions": self.conditions.to_dict()}


class SearchSession:
    """
    Single-place workflow: look up one query, show its weather, optionally save it.

    State goes IDLE -> SEARCHING -> RESOLVED | FAILED. Starting another search
    goes back to SEARCHING. If searches overlap, only the one started last is
    allowed to set the outcome.
    """

    def __init__(self, store: LocationStore, resolver: PlaceResolver, weather: WeatherClient):
        self.store = store
        self.resolver = resolver
        self.weather = weather
        self.state = SessionState.IDLE
        self.result: SearchResult | None = None
        self.error: WeatherAppError | None = None
        self._generation = 0

    async def search(self, query: str) -> SearchResult:
        text = (query or "").strip()
        self._generation += 1
        generation = self._generation
        self.state = SessionState.SEARCHING
        self.result = None
        self.error = None

        try:
            if not text:
                raise EmptyQuery()
            place = await self.resolver.resolve(text)
            conditions = await self.weather.fetch_current(place.latitude, place.longitude)
        except WeatherAppError as e:
            if generation == self._generation:
                self.state = SessionState.FAILED
                self.error = e
            logger.info("Search for %r failed: %s", text, e.message)
            raise

        result = SearchResult(place=place, conditions=conditions)
        if generation == self._generation:
            self.state = SessionState.RESOLVED
            self.result = result
        else:
            logger.debug("Discarding stale search result for %r", text)
        return result

    # Advisory only; the store enforces capacity when save actually runs.
    def can_save(self) -> bool:
        return self.store.can_save()

    def try_save(self, place: ResolvedPlace) -> SaveResult:
        return self.store.save(place.display_name)
