import math

import pytest

from core.geo import EARTH_RADIUS_M, distance_meters
from models.place import LatLon


def test_same_point_is_zero():
    p = LatLon(lat=6.9271, lon=79.8612)
    assert distance_meters(p, p) == 0.0


def test_one_degree_of_latitude():
    a = LatLon(lat=0.0, lon=0.0)
    b = LatLon(lat=1.0, lon=0.0)
    assert distance_meters(a, b) == pytest.approx(EARTH_RADIUS_M * math.pi / 180)


def test_symmetric_and_not_rounded():
    colombo = LatLon(lat=6.9271, lon=79.8612)
    kandy = LatLon(lat=7.2906, lon=80.6337)
    there = distance_meters(colombo, kandy)
    back = distance_meters(kandy, colombo)
    assert there == pytest.approx(back)
    assert 90_000 < there < 100_000
    assert there != round(there)


def test_antipodes():
    a = LatLon(lat=0.0, lon=0.0)
    b = LatLon(lat=0.0, lon=180.0)
    assert distance_meters(a, b) == pytest.approx(math.pi * EARTH_RADIUS_M)
