#!/usr/bin/env python

import argparse
import logging
import os
import sys

import scampy

logger = logging.getLogger(__name__)


def get_parser():
    parser = argparse.ArgumentParser(
        description="Incrementally compute the matrix profiles of time series segments"
    )
    parser.add_argument("m", type=int, help="Window size")
    parser.add_argument("segments", nargs="+", help="One input file per segment")
    parser.add_argument("--output-dir", default="piecewise_mp")
    parser.add_argument("--output-pearson", action="store_true")
    parser.add_argument("--max-tile-size", type=int, default=None)
    parser.add_argument("--double", action="store_true")
    parser.add_argument("--mixed", action="store_true")
    parser.add_argument("--single", action="store_true")
    parser.add_argument("--verbose", "-v", action="store_true")

    return parser


def main(argv=None):
    args = get_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    precision = scampy.get_precision_type(args.double, args.mixed, args.single)
    if precision == scampy.PrecisionType.PRECISION_INVALID:
        precision = scampy.PrecisionType.PRECISION_DOUBLE

    stream = scampy.scampi(
        args.m, precision=precision, max_tile_size=args.max_tile_size
    )
    for filename in args.segments:
        try:
            T = scampy.read_file(filename)
        except (FileNotFoundError, ValueError) as e:
            logger.critical(e)
            sys.exit(1)
        stream.add_segment(T)

    stream.process_pending()

    os.makedirs(args.output_dir, exist_ok=True)
    stream.write_profiles(os.path.join(args.output_dir, ""), args.output_pearson)
    logger.info(
        f"Wrote the profiles of {stream.n_segments_} segments to {args.output_dir}"
    )


if __name__ == "__main__":
    main()
