"""Tests for the streaming reservoir sampler."""

from __future__ import annotations

from collections import namedtuple

import numpy as np

from ReservoirSample import ReservoirSampler

Unit = namedtuple("Unit", ["index", "query_name", "reads"])


def make_units(n: int) -> list[Unit]:
    return [Unit(i, "read{}".format(i), ()) for i in range(n)]


def test_reservoir_size_is_min_of_num_and_seen() -> None:
    """The reservoir never holds more than num units."""
    sampler = ReservoirSampler(3, np.random.default_rng(0))
    for i, unit in enumerate(make_units(10)):
        sampler.add(unit)
        assert len(sampler) == min(3, i + 1)
    assert sampler.seen == 10


def test_sample_is_in_stream_order() -> None:
    """Retained units come back sorted by their position in the stream."""
    sample = ReservoirSampler(20, np.random.default_rng(1)).consume(make_units(200))
    indices = [u.index for u in sample]
    assert len(indices) == 20
    assert indices == sorted(indices)
    assert len(set(indices)) == 20


def test_same_seed_same_sample() -> None:
    """Explicit seeds make the sample reproducible."""
    first = ReservoirSampler(3, np.random.default_rng(42)).consume(make_units(10))
    second = ReservoirSampler(3, np.random.default_rng(42)).consume(make_units(10))
    assert first == second


def test_num_larger_than_stream_keeps_everything() -> None:
    """With fewer units than num, the sample is the whole input."""
    units = make_units(5)
    assert ReservoirSampler(10, np.random.default_rng(0)).consume(units) == units


def test_num_zero_keeps_nothing() -> None:
    """num == 0 is allowed and yields an empty sample."""
    rng = np.random.default_rng(0)
    sampler = ReservoirSampler(0, rng)
    assert sampler.consume(make_units(5)) == []
    assert sampler.seen == 5


def test_sampler_does_not_touch_global_state() -> None:
    """Only the generator handed to the sampler is advanced."""
    np.random.seed(3)
    expected = np.random.random()
    np.random.seed(3)
    ReservoirSampler(2, np.random.default_rng(9)).consume(make_units(50))
    assert np.random.random() == expected


def test_inclusion_is_uniform() -> None:
    """Every unit is kept about num / total of the time."""
    total, num, runs = 10, 3, 3000
    counts = np.zeros(total)
    for seed in range(runs):
        sample = ReservoirSampler(num, np.random.default_rng(seed)).consume(
            make_units(total)
        )
        for unit in sample:
            counts[unit.index] += 1

    expected = runs * num / total
    stderr = np.sqrt(runs * (num / total) * (1 - num / total))
    assert np.all(np.abs(counts - expected) < 5 * stderr)
