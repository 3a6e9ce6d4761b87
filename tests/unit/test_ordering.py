"""Tests for fractional order keys."""

import math

import pytest

from backend.app.planning.ordering import order_after


def test_last_node_gets_half_step() -> None:
    assert order_after(3.0, [1.0, 2.0]) == 3.5


def test_half_step_used_when_it_fits_before_next_key() -> None:
    assert order_after(1.0, [2.0, 3.0]) == 1.5


def test_midpoint_used_when_half_step_would_collide() -> None:
    assert order_after(1.0, [1.5, 2.0]) == 1.25


def test_repeated_inserts_stay_between_neighbours() -> None:
    siblings = [1.0, 2.0]
    order = 1.0
    for _ in range(5):
        order = order_after(order, siblings)
        assert 1.0 < order < 2.0
        assert order not in siblings
        siblings.append(order)


def test_exhausted_gap_raises() -> None:
    with pytest.raises(ValueError):
        order_after(1.0, [math.nextafter(1.0, 2.0)])
