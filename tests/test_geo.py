import pytest

from helphive.geo import distance_km

POINTS = [
    (0.0, 0.0),
    (40.7128, -74.0060),  # New York
    (51.5074, -0.1278),  # London
    (-33.8688, 151.2093),  # Sydney
    (89.9, 179.9),
    (-89.9, -179.9),
]


@pytest.mark.parametrize("a", POINTS)
@pytest.mark.parametrize("b", POINTS)
def test_distance_is_symmetric(a, b) -> None:
    assert distance_km(*a, *b) == distance_km(*b, *a)


@pytest.mark.parametrize("point", POINTS)
def test_distance_to_self_is_zero(point) -> None:
    assert distance_km(*point, *point) == 0.0


def test_one_degree_along_equator() -> None:
    assert distance_km(0.0, 0.0, 0.0, 1.0) == 111.2


def test_london_to_paris() -> None:
    d = distance_km(51.5074, -0.1278, 48.8566, 2.3522)
    assert 340 < d < 347


def test_antipodes_are_half_the_circumference() -> None:
    assert distance_km(0.0, 0.0, 0.0, 180.0) == 20015.1


def test_rounds_to_one_decimal() -> None:
    d = distance_km(40.0, -74.0, 40.0189, -74.0)
    assert d == 2.1
    assert round(d, 1) == d
