"""SubsampleBam

Random sample --num reads (single-end) or read pairs (paired-end) from a SAM or
BAM file that has been sorted by query name, without reading the whole file
into memory and without counting the reads first.

Both mates of a pair are always kept or dropped together, and the reads that
are kept come out in the same relative order they went in.

    samtools sort -n -o input.qsorted.bam input.bam
    SubsampleBam.py -i input.qsorted.bam -o sample.bam -n 100000 -s 43
"""

import logging
import pysam
from argparse import ArgumentParser
from os import path
from sys import exit
from time import time
from numpy.random import default_rng
from tqdm import tqdm

from PairReads import UnitAssembler, MalformedInputError, SortOrderError
from ReservoirSample import ReservoirSampler, TRACE

VERSION = "0.1.0"

LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": TRACE,
}

logger = logging.getLogger(__name__)


def init_logger(level):
    logging.addLevelName(TRACE, "TRACE")
    logging.basicConfig(
        format="[%(asctime)s %(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S %z",
        level=LEVELS[level],
        force=True,
    )


def parse_args(argv=None):
    "Parse command line arguments"
    parser = ArgumentParser(
        description="Random sample --num reads (SE) or read pairs (PE) from "
        "a queryname sorted BAM or SAM"
    )
    parser.add_argument(
        "--inFile", "-i", required=True, help="input BAM/SAM, queryname sorted"
    )
    parser.add_argument("--outFile", "-o", required=True, help="output BAM")
    parser.add_argument(
        "--num",
        "-n",
        default=5000,
        type=int,
        help="number of reads (read pairs if PE) to keep (default: %(default)s)",
    )
    parser.add_argument(
        "--seed", "-s", default=None, type=int, help="seed (default: from the clock)"
    )
    parser.add_argument("--level", default="info", choices=list(LEVELS))
    parser.add_argument(
        "--primary-only",
        default=False,
        action="store_true",
        help="Drop secondary and supplementary alignments before pairing mates",
    )
    parser.add_argument("--version", "-v", action="version", version="v" + VERSION)
    args = parser.parse_args(argv)

    if not path.exists(args.inFile):
        parser.error("{} does not exist!".format(args.inFile))
    if args.inFile.split(".")[-1].lower() not in ("sam", "bam"):
        parser.error("{} does not seem to be a SAM or BAM!".format(args.inFile))
    if args.num < 0:
        parser.error("--num must not be negative")
    if args.seed is not None and args.seed < 0:
        parser.error("--seed must not be negative")
    return args


def check_header(header):
    "Make sure the header says the file is sorted by query name"
    sort_order = header.get("HD", {}).get("SO")
    if sort_order != "queryname":
        raise SortOrderError(
            "Not sorted by queryname (@HD SO:{})! Please run "
            "'samtools sort -n -o output.bam input.bam' first!".format(sort_order)
        )


def primary_reads(reads):
    for read in reads:
        if read.is_secondary or read.is_supplementary:
            continue
        yield read


def subsample(reads, writer, num, rng, progress=False):
    """Write a random sample of num units from reads to writer

    Returns the number of units seen and the number written.
    """
    # Generator so tqdm doesn't ask an unindexed AlignmentFile for its length
    reads = tqdm((read for read in reads), unit=" reads", disable=not progress)
    assembler = UnitAssembler(reads)
    sampler = ReservoirSampler(num, rng)

    logger.info("Iteration starts.")
    kept = sampler.consume(assembler)
    if num > sampler.seen:
        logger.warning(
            "--num (%d) exceeds the input read (pair) count (%d)! output all.",
            num,
            sampler.seen,
        )

    for unit in kept:
        for read in unit.reads:
            writer.write(read)
    return sampler.seen, len(kept)


def main(argv=None):
    args = parse_args(argv)
    init_logger(args.level)
    if args.seed is None:
        args.seed = int(time() * 1000)
    logger.info(
        "{ inFile = %s, outFile = %s, num = %d, seed = %d, level = %s }",
        args.inFile,
        args.outFile,
        args.num,
        args.seed,
        args.level,
    )

    rng = default_rng(args.seed)
    try:
        with pysam.AlignmentFile(args.inFile, check_sq=False) as infh:
            check_header(infh.header.to_dict())
            with pysam.AlignmentFile(args.outFile, "wb", template=infh) as outfh:
                reads = primary_reads(infh) if args.primary_only else infh
                seen, written = subsample(
                    reads,
                    outfh,
                    args.num,
                    rng,
                    progress=logger.isEnabledFor(logging.INFO),
                )
    except MalformedInputError as err:
        logger.error("%s", err)
        return 1

    logger.info("Kept {:,} of {:,} reads (read pairs)".format(written, seen))
    logger.info("All done.")
    return 0


if __name__ == "__main__":
    exit(main())
