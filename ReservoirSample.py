"""ReservoirSample

Keep a uniform random sample of a fixed number of items from a stream of
unknown length, in one pass and without holding more than `num` items.

This is the classic Algorithm R: the first `num` items fill the reservoir, and
the i-th item after that (0-based) replaces a random slot with probability
num / (i + 1). At any point every item seen so far has the same chance of
being in the reservoir.

Items need an `index` attribute giving their position in the stream; the
sample is handed back in that order rather than in slot order.
"""

import logging
from operator import attrgetter

logger = logging.getLogger(__name__)

TRACE = 5


class ReservoirSampler:
    def __init__(self, num, rng):
        # rng is a numpy.random.Generator, e.g. numpy.random.default_rng(seed)
        self.num = num
        self.rng = rng
        self.reservoir = []
        self.seen = 0

    def __len__(self):
        return len(self.reservoir)

    def add(self, unit):
        i = self.seen
        self.seen += 1
        if self.num <= 0:
            return
        if i < self.num:
            self.reservoir.append(unit)
            return

        # integers() excludes the upper bound, so this is j in [0, i]
        j = self.rng.integers(0, i + 1)
        if j < self.num:
            logger.log(TRACE, "Unit %d replaces slot %d", i, j)
            self.reservoir[j] = unit

    def consume(self, units):
        "Offer every unit to the reservoir, then return the sample"
        for unit in units:
            self.add(unit)
        return self.sample()

    def sample(self):
        "Retained units, in the order they appeared in the stream"
        return sorted(self.reservoir, key=attrgetter("index"))
