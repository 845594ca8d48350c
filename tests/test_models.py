import pytest

from models import CardStatus, CurrentConditions, ResolvedPlace, SavedCityCard, SavedLocation

PLACE = ResolvedPlace("Rome, Lazio, Italy", 41.9, 12.5)
CONDITIONS = CurrentConditions(21.0, 8.0, 120.0, 1, "2026-10-19T12:00")


# Section: test_model_repr, ensures model __repr__ returns a meaningful string.
def test_model_repr():
    r = SavedLocation(id=1, label="Testville, Nowhere")
    assert "Testville" in repr(r)


def test_card_starts_loading():
    card = SavedCityCard.loading("Rome")
    assert card.status is CardStatus.LOADING
    assert card.place is None and card.conditions is None and card.error_message is None


def test_card_ready_carries_place_and_conditions():
    card = SavedCityCard.loading("Rome").ready(PLACE, CONDITIONS)
    assert card.status is CardStatus.READY
    assert card.label == "Rome"
    assert card.to_dict()["conditions"]["temperature_c"] == 21.0


def test_card_failed_carries_message():
    card = SavedCityCard.loading("Rome").failed("Failed to fetch weather.")
    assert card.to_dict() == {
        "label": "Rome",
        "status": "failed",
        "place": None,
        "conditions": None,
        "error_message": "Failed to fetch weather.",
    }


@pytest.mark.parametrize("finish", [
    lambda c: c.ready(PLACE, CONDITIONS),
    lambda c: c.failed("nope"),
])
def test_terminal_cards_cannot_transition(finish):
    card = finish(SavedCityCard.loading("Rome"))
    with pytest.raises(ValueError):
        card.failed("again")
    with pytest.raises(ValueError):
        card.ready(PLACE, CONDITIONS)
