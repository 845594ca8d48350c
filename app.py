import logging
import os
from contextlib import asynccontextmanager

import httpx
from flask import Flask, current_app, jsonify, request

from errors import EmptyQuery, NotFound, UpstreamError, WeatherAppError
from location_store import LocationStore
from logging_config import setup_logging
from models import ResolvedPlace
from refresh_coordinator import RefreshCoordinator
from search_session import SearchSession
from weather_api import WeatherClient, PlaceResolver

logger = logging.getLogger(__name__)

# Shown when no coordinates are supplied to /api/current.
HALIFAX = ResolvedPlace(display_name="Halifax, NS, Canada", latitude=44.6488, longitude=-63.5752)

ERROR_STATUS = {
    EmptyQuery: 400,
    NotFound: 404,
    UpstreamError: 502,
}

SAVE_STATUS = {
    "EmptyLabel": 400,
    "CapacityExceeded": 409,
    "DuplicateLabel": 409,
}


def _store() -> LocationStore:
    return current_app.extensions["location_store"]


# One HTTP client per request: each async view runs on its own event loop.
@asynccontextmanager
async def _weather_services():
    async with httpx.AsyncClient(
        timeout=current_app.config["HTTP_TIMEOUT"],
        transport=current_app.config.get("HTTP_TRANSPORT"),
    ) as http:
        yield PlaceResolver(http), WeatherClient(http)


def _save_response(result):
    status = 201 if result.ok else SAVE_STATUS.get(result.reason, 400)
    return jsonify(result.to_dict()), status


def _parse_coordinate(raw, low, high, name):
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be numeric.")
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}.")
    return value


# App factory: reads configuration, opens the location store and registers routes.
def create_app(overrides: dict | None = None):
    app = Flask(__name__)
    app.config["DATABASE_URL"] = os.environ.get("DATABASE_URL", "sqlite:///weather.db")
    app.config["HTTP_TIMEOUT"] = float(os.environ.get("HTTP_TIMEOUT", "20"))
    app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO")
    app.config["HTTP_TRANSPORT"] = None
    if overrides:
        app.config.update(overrides)

    setup_logging(app.config["LOG_LEVEL"])

    store = LocationStore(app.config["DATABASE_URL"]).open()
    app.extensions["location_store"] = store

    @app.errorhandler(WeatherAppError)
    def handle_weather_error(error):
        status = next((code for kind, code in ERROR_STATUS.items() if isinstance(error, kind)), 400)
        logger.info("%s %s -> %s: %s", request.method, request.path, error.kind, error.message)
        return jsonify(error=error.message, kind=error.kind), status

    @app.route("/", methods=["GET"])
    def index():
        store = _store()
        return jsonify(name="Saved Weather", saved=store.count(), capacity=store.capacity)

    @app.route("/api/saved", methods=["GET"])
    def list_saved():
        store = _store()
        labels = store.list()
        return jsonify(
            labels=labels,
            count=len(labels),
            capacity=store.capacity,
            can_save=len(labels) < store.capacity,
        )

    @app.route("/api/saved", methods=["POST"])
    def save_label():
        payload = request.get_json(silent=True) or {}
        return _save_response(_store().save(str(payload.get("label") or "")))

    # Removing a label that is not saved still succeeds.
    @app.route("/api/saved", methods=["DELETE"])
    def remove_label():
        _store().remove(request.args.get("label", ""))
        return "", 204

    @app.route("/api/saved/weather", methods=["GET"])
    async def saved_weather():
        async with _weather_services() as (resolver, weather):
            coordinator = RefreshCoordinator(_store(), resolver, weather)
            cards = await coordinator.refresh_all()
        return jsonify(cards=[card.to_dict() for card in cards])

    @app.route("/api/search", methods=["GET"])
    async def search():
        async with _weather_services() as (resolver, weather):
            session = SearchSession(_store(), resolver, weather)
            result = await session.search(request.args.get("q", ""))
            body = result.to_dict()
            body["can_save"] = session.can_save()
        return jsonify(body)

    # Saves a place returned by /api/search under its canonical display name.
    @app.route("/api/search/save", methods=["POST"])
    def save_search_result():
        payload = request.get_json(silent=True) or {}
        try:
            place = ResolvedPlace(
                display_name=str(payload.get("display_name") or ""),
                latitude=_parse_coordinate(payload.get("latitude"), -90, 90, "Latitude"),
                longitude=_parse_coordinate(payload.get("longitude"), -180, 180, "Longitude"),
            )
        except ValueError as e:
            return jsonify(error=str(e)), 400
        session = SearchSession(_store(), resolver=None, weather=None)
        return _save_response(session.try_save(place))

    @app.route("/api/current", methods=["GET"])
    async def current():
        lat_raw = request.args.get("lat")
        lon_raw = request.args.get("lon")
        notice = None
        if lat_raw is None or lon_raw is None:
            place = HALIFAX
            notice = "Location not provided. Showing Halifax as fallback."
        else:
            try:
                latitude = _parse_coordinate(lat_raw, -90, 90, "Latitude")
                longitude = _parse_coordinate(lon_raw, -180, 180, "Longitude")
            except ValueError as e:
                return jsonify(error=str(e)), 400
            place = ResolvedPlace(f"{latitude:.4f}, {longitude:.4f}", latitude, longitude)

        async with _weather_services() as (_, weather):
            conditions = await weather.fetch_current(place.latitude, place.longitude)
        return jsonify(place=place.to_dict(), conditions=conditions.to_dict(), notice=notice)

    return app


if __name__ == "__main__":
    app = create_app()
    try:
        app.run(debug=True)
    finally:
        app.extensions["location_store"].close()
