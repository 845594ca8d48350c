from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SavedLocation(Base):
    __tablename__ = "saved_locations"
    # AUTOINCREMENT keeps ids from being reused, so id order is insertion order.
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    label = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    def __repr__(self):
        return f"<SavedLocation {self.id} {self.label}>"


@dataclass(frozen=True)
class ResolvedPlace:
    display_name: str
    latitude: float
    longitude: float

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class CurrentConditions:
    temperature_c: float
    wind_speed_kmh: float
    wind_direction_deg: float
    weather_code: int
    observed_at: str

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class SaveResult:
    ok: bool
    message: str
    reason: str | None = None

    def to_dict(self):
        return asdict(self)


class CardStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class SavedCityCard:
    """
    One row of the saved-locations view.

    A card starts LOADING and moves exactly once to READY or FAILED; both are
    terminal. Transitions return a new card instead of mutating this one.
    """
    label: str
    status: CardStatus = CardStatus.LOADING
    place: ResolvedPlace | None = None
    conditions: CurrentConditions | None = None
    error_message: str | None = None

    @classmethod
    def loading(cls, label: str) -> "SavedCityCard":
        return cls(label=label)

    def ready(self, place: ResolvedPlace, conditions: CurrentConditions) -> "SavedCityCard":
        self._require_loading(CardStatus.READY)
        return SavedCityCard(self.label, CardStatus.READY, place=place, conditions=conditions)

    def failed(self, message: str) -> "SavedCityCard":
        self._require_loading(CardStatus.FAILED)
        return SavedCityCard(self.label, CardStatus.FAILED, error_message=message)

    def _require_loading(self, target):
        if self.status is not CardStatus.LOADING:
            raise ValueError(f"Card '{self.label}' is {self.status.value}; cannot move to {target.value}")

    def to_dict(self):
        return {
            "label": self.label,
            "status": self.status.value,
            "place": self.place.to_dict() if self.place else None,
            "conditions": self.conditions.to_dict() if self.conditions else None,
            "error_message": self.error_message,
        }
