"""PairReads

Group the records of a queryname-sorted alignment stream into sampling units:
a single read for single-end data, or both mates of a template for paired-end
data. Whether the data is paired is decided from the first record, and the
whole file is expected to agree with it.

Only one record of look-ahead is kept, so a mate that has been separated from
its partner (i.e. the file is not really sorted by name) is an error rather
than something we try to fix up.
"""

import logging
from collections import namedtuple

logger = logging.getLogger(__name__)


SamplingUnit = namedtuple("SamplingUnit", ["index", "query_name", "reads"])


class MalformedInputError(ValueError):
    "The record stream can't be split into well formed sampling units"


class SortOrderError(MalformedInputError):
    "Mates are not adjacent, so the input isn't sorted by query name"


class IncompletePairError(MalformedInputError):
    "The stream ended with a mate still waiting for its partner"


def segment(read):
    return bool(read.is_read1), bool(read.is_read2)


class UnitAssembler:
    """Turn a stream of reads into a stream of SamplingUnits

    Reads only need query_name, is_paired, is_read1 and is_read2, so this
    works on a pysam.AlignmentFile or on any iterable of look-alikes.
    """

    def __init__(self, reads):
        self._reads = iter(reads)
        self._pending = None
        self._last_name = None
        self.paired = None
        self.records_read = 0
        self.units_emitted = 0

    def __iter__(self):
        while True:
            unit = self.next_unit()
            if unit is None:
                return
            yield unit

    def _emit(self, query_name, reads):
        unit = SamplingUnit(self.units_emitted, query_name, reads)
        self.units_emitted += 1
        self._last_name = query_name
        return unit

    def _fail(self, cls, message, read):
        return cls(
            "{} (read '{}', record {:,})".format(
                message, read.query_name, self.records_read
            )
        )

    def next_unit(self):
        "Return the next SamplingUnit, or None once the stream is exhausted"
        for read in self._reads:
            self.records_read += 1
            if self.paired is None:
                self.paired = bool(read.is_paired)
                logger.debug(
                    "First record is %s; treating input as %s",
                    read.query_name,
                    "paired-end" if self.paired else "single-end",
                )
            elif bool(read.is_paired) != self.paired:
                raise self._fail(
                    MalformedInputError,
                    "Mix of single-end and paired-end records",
                    read,
                )

            if not self.paired:
                if read.query_name == self._last_name:
                    raise self._fail(
                        MalformedInputError,
                        "More than one single-end record with the same name",
                        read,
                    )
                return self._emit(read.query_name, (read,))

            if self._pending is None:
                if read.query_name == self._last_name:
                    raise self._fail(
                        MalformedInputError,
                        "More than two records with the same name",
                        read,
                    )
                self._pending = read
                continue

            mate = self._pending
            if read.query_name != mate.query_name:
                raise self._fail(
                    SortOrderError,
                    "Mate of '{}' not found next to it; is the input sorted "
                    "by query name?".format(mate.query_name),
                    read,
                )
            segments = {segment(mate), segment(read)}
            if segments != {(True, False), (False, True)}:
                raise self._fail(
                    MalformedInputError,
                    "Mates are not one read 1 and one read 2 "
                    "(read1/read2 flags {} and {})".format(
                        segment(mate), segment(read)
                    ),
                    read,
                )
            self._pending = None
            return self._emit(read.query_name, (mate, read))

        if self._pending is not None:
            raise self._fail(
                IncompletePairError, "Input ends with an unpaired mate", self._pending
            )
        return None
