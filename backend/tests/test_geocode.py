import httpx
import pytest

from core.errors import PlaceNotFoundError
from services.geocode import GeocodeService


@pytest.mark.asyncio
async def test_geocode_best_match(settings):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(
            200,
            json=[{"display_name": "Ella, Badulla District, Sri Lanka", "lat": "6.8667", "lon": "81.0466"}],
        )

    restricted = settings.model_copy(update={"NOMINATIM_COUNTRY_CODES": "lk"})
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        hit = await GeocodeService(restricted, client=client).geocode("Ella")

    assert hit.name.startswith("Ella")
    assert (hit.lat, hit.lon) == (6.8667, 81.0466)
    params = seen[0].url.params
    assert seen[0].url.path == "/search"
    assert params["q"] == "Ella"
    assert params["format"] == "jsonv2"
    assert params["countrycodes"] == "lk"


@pytest.mark.asyncio
async def test_geocode_not_found(settings):
    def handler(request):
        return httpx.Response(200, json=[])

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(PlaceNotFoundError, match="Atlantis"):
            await GeocodeService(settings, client=client).geocode("Atlantis")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "item",
    [
        {"display_name": "Somewhere"},
        {"display_name": "Somewhere", "lat": "6.9"},
        {"display_name": "Somewhere", "lat": "n/a", "lon": "79.8"},
        "not an object",
    ],
)
async def test_geocode_hit_without_coordinates_is_not_found(settings, item):
    def handler(request):
        return httpx.Response(200, json=[item])

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(PlaceNotFoundError, match="Somewhere"):
            await GeocodeService(settings, client=client).geocode("Somewhere")


@pytest.mark.asyncio
async def test_geocode_http_error_propagates(settings):
    def handler(request):
        return httpx.Response(503, text="busy")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await GeocodeService(settings, client=client).geocode("Ella")
