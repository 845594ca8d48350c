import httpx
import pytest
import pytest_asyncio

from app import create_app
from location_store import LocationStore

DEFAULT_WEATHER = {
    "temperature": 12.5,
    "windspeed": 14.0,
    "winddirection": 250.0,
    "weathercode": 3,
    "time": "2026-10-19T12:00",
}


class FakeOpenMeteo:
    """
    Stands in for the geocoding and forecast APIs behind an httpx.MockTransport.
    Records every request so tests can assert on what went over the wire.
    """

    def __init__(self):
        self.places = {}
        self.failing_names = set()
        self.weather = {}
        self.failing_weather = set()
        self.delays = {}
        self.requests = []

    def add_place(self, query, name, latitude, longitude, admin1=None, country=None):
        match = {"name": name, "latitude": latitude, "longitude": longitude}
        if admin1 is not None:
            match["admin1"] = admin1
        if country is not None:
            match["country"] = country
        self.places.setdefault(query, []).append(match)

    def geocoding_calls(self):
        return [r.url.params["name"] for r in self.requests if r.url.host == "geocoding-api.open-meteo.com"]

    def weather_calls(self):
        return [r for r in self.requests if r.url.path == "/v1/forecast"]

    async def handler(self, request):
        self.requests.append(request)
        if request.url.host == "geocoding-api.open-meteo.com":
            name = request.url.params["name"]
            hook = self.delays.get(name)
            if hook is not None:
                await hook()
            if name in self.failing_names:
                return httpx.Response(500, json={"error": True, "reason": "boom"})
            results = self.places.get(name)
            # The real API omits "results" entirely when nothing matches.
            return httpx.Response(200, json={"results": results} if results else {"generationtime_ms": 0.4})

        if request.url.path == "/v1/forecast":
            key = (float(request.url.params["latitude"]), float(request.url.params["longitude"]))
            if key in self.failing_weather:
                return httpx.Response(503, text="unavailable")
            current = self.weather.get(key, DEFAULT_WEATHER)
            return httpx.Response(200, json={"latitude": key[0], "longitude": key[1], "current_weather": current})

        return httpx.Response(404)

    @property
    def transport(self):
        return httpx.MockTransport(self.handler)


@pytest.fixture()
def open_meteo():
    return FakeOpenMeteo()


@pytest_asyncio.fixture()
async def http(open_meteo):
    async with httpx.AsyncClient(transport=open_meteo.transport) as client:
        yield client


# A location store backed by a temporary SQLite file.
@pytest.fixture()
def store(tmp_path):
    store = LocationStore(f"sqlite:///{tmp_path / 'locations.db'}").open()
    yield store
    store.close()


# Creates a Flask app with a temporary SQLite database and the fake Open-Meteo transport.
@pytest.fixture()
def app(tmp_path, open_meteo):
    app = create_app({
        "TESTING": True,
        "DATABASE_URL": f"sqlite:///{tmp_path / 'test.db'}",
        "HTTP_TRANSPORT": open_meteo.transport,
    })
    yield app
    app.extensions["location_store"].close()


@pytest.fixture()
def client(app):
    return app.test_client()
