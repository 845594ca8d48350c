import asyncio
import logging

from location_store import LocationStore
from models import CardStatus, SavedCityCard
from weather_api import PlaceResolver, WeatherClient

logger = logging.getLogger(__name__)


class RefreshCoordinator:
    """
    Resolves and fetches weather for every saved label at once.

    The label list is snapshotted when refresh_all() starts; that snapshot fixes
    both which cards come back and their order. Pipelines share no state, and a
    failure in one becomes a FAILED card without touching the others.
    """

    def __init__(self, store: LocationStore, resolver: PlaceResolver, weather: WeatherClient):
        self.store = store
        self.resolver = resolver
        self.weather = weather

    def loading_cards(self) -> tuple[SavedCityCard, ...]:
        return tuple(SavedCityCard.loading(label) for label in self.store.list())

    async def refresh_all(self) -> tuple[SavedCityCard, ...]:
        snapshot = self.store.list()
        if not snapshot:
            return ()

        logger.info("Refreshing %d saved locations", len(snapshot))
        # gather keeps argument order, whatever order the pipelines finish in.
        cards = await asyncio.gather(*(self._pipeline(label) for label in snapshot))

        failed = sum(1 for card in cards if card.status is CardStatus.FAILED)
        if failed:
            logger.warning("Refresh finished with %d of %d locations failed", failed, len(cards))
        return tuple(cards)

    async def _pipeline(self, label: str) -> SavedCityCard:
        card = SavedCityCard.loading(label)
        try:
            place = await self.resolver.resolve(label)
            conditions = await self.weather.fetch_current(place.latitude, place.longitude)
        except Exception as e:
            logger.warning("Refresh failed for %r: %s", label, e)
            return card.failed(getattr(e, "message", None) or str(e) or "Failed to fetch weather")
        return card.ready(place, conditions)
