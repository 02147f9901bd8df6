# src/si5351_planner/cli.py
from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from typing import List

from .config_models import PlanRequest, PlanningError, RequestError, SynthLimits
from .outputs import FORMATS, write_plans, write_report
from .planner import CandidatePlan, Planner, rank_candidates
from .plotting import plot_plan_errors

logger = logging.getLogger(__name__)

_SUFFIXES = (
    ("ghz", 1e9),
    ("mhz", 1e6),
    ("khz", 1e3),
    ("hz", 1.0),
    ("g", 1e9),
    ("m", 1e6),
    ("k", 1e3),
)


def parse_freq(text: str) -> float:
    """'25MHz', '4.6875M', '32.768kHz' or plain Hz ('25e6') -> Hz."""
    s = text.strip().lower()
    scale = 1.0
    for suffix, factor in _SUFFIXES:
        if s.endswith(suffix):
            s = s[: -len(suffix)].strip()
            scale = factor
            break
    try:
        return float(s) * scale
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid frequency: {text!r}") from None


# Sensible name for argparse error messages.
parse_freq.__name__ = "frequency"


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Si5351 frequency planner (continued-fraction divider search)"
    )
    parser.add_argument("reference", type=parse_freq, help="XTAL / CLKIN frequency")
    parser.add_argument(
        "clocks",
        type=parse_freq,
        nargs="+",
        help="Requested output clock frequencies (0 = unused output)",
    )
    parser.add_argument(
        "--format",
        choices=FORMATS,
        default="text",
        help="Report format",
    )
    parser.add_argument(
        "--max-denominator",
        type=int,
        default=None,
        help="Override the multisynth fraction denominator bound",
    )
    parser.add_argument(
        "--best",
        type=int,
        default=None,
        metavar="N",
        help="Only report the N best candidates across both strategies",
    )
    parser.add_argument(
        "--plot",
        type=str,
        default=None,
        metavar="PATH",
        help="Save a plot of candidate errors to PATH",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="More logging (repeat for debug output)",
    )
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    limits = SynthLimits()
    if args.max_denominator is not None:
        if args.max_denominator < 1:
            parser.error("--max-denominator must be >= 1")
        limits = dataclasses.replace(limits, max_denominator=args.max_denominator)
    if args.best is not None and args.best < 1:
        parser.error("--best must be >= 1")

    request = PlanRequest(reference_freq=args.reference, clocks=list(args.clocks))

    try:
        planner = Planner(request, limits)
        if args.best is not None or args.plot:
            plans: List[CandidatePlan] = []
            failure = None
            try:
                for plan in planner.iter_candidates():
                    plans.append(plan)
            except PlanningError as exc:
                # report what strategy 1 produced before the failure
                failure = exc
            if args.best is not None:
                best = rank_candidates(plans, limits)[: args.best]
                if args.format == "text":
                    sys.stdout.write(f"best {len(best)} candidates\n\n")
                write_plans(sys.stdout, best, planner.prescale, args.format)
            else:
                write_plans(sys.stdout, plans, planner.prescale, args.format)
            if args.plot and plans:
                plot_plan_errors(
                    plans,
                    out_path=args.plot,
                    tolerance=limits.clock_tolerance,
                )
            if failure is not None:
                raise failure
        else:
            write_report(sys.stdout, planner, args.format)
    except (RequestError, PlanningError) as exc:
        logger.error("%s", exc)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
