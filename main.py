"""
K-Means Cluster Analysis
========================
Groups the rows of a CSV file into k clusters with an iterative k-means
engine and reports the group of every row, the group means and a few
quality metrics.

Usage:
    uv run python main.py data.csv -k 5 --init kmeans++ --seed 42 --diagnostics
"""

import argparse
import sys

import numpy as np

from kmeans import DistanceChange, InitializationRule, MaxIterations, RunTime
from pipeline import (elbow_curve, load_observations, run_clustering, save_assignments,
                      save_figures, summarize)


def build_parser():
    parser = argparse.ArgumentParser(description="k-means cluster analysis of a CSV file.")
    parser.add_argument("input", help="CSV file, one observation per row")
    parser.add_argument("-k", "--groups", type=int, required=True, help="number of groups")
    parser.add_argument("--columns", nargs="+", help="columns to use (default: all numeric)")
    parser.add_argument("--init", choices=[r.value for r in InitializationRule],
                        default=InitializationRule.RANDOM_PARTITIONS.value,
                        help="initialization rule")
    parser.add_argument("--max-iter", type=int, help="stop after this many iterations")
    parser.add_argument("--threshold", type=float,
                        help="stop when the relative change in mean distance falls below this")
    parser.add_argument("--max-time", type=float, help="stop after this many seconds")
    parser.add_argument("--seed", type=int, help="seed for reproducible runs")
    parser.add_argument("--diagnostics", action="store_true", help="print per-iteration progress")
    parser.add_argument("--output", help="write rows with their group to this CSV file")
    parser.add_argument("--figures", help="directory for figures")
    parser.add_argument("--elbow", nargs=2, type=int, metavar=("KMIN", "KMAX"),
                        help="also compute inertia for every k in [KMIN, KMAX]")
    return parser


def stopping_rules_from_args(args):
    rules = []
    if args.max_iter is not None:
        rules.append(MaxIterations(args.max_iter))
    if args.threshold is not None:
        rules.append(DistanceChange(args.threshold))
    if args.max_time is not None:
        rules.append(RunTime(args.max_time))
    return rules


def main(argv=None):
    args = build_parser().parse_args(argv)
    steps = 3 + bool(args.elbow) + bool(args.output) + bool(args.figures)
    step = 1

    print(f"\n[{step}/{steps}] Loading data...")
    try:
        data, frame = load_observations(args.input, args.columns)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Unable to read observations: {exc}")
    print(f"  Shape: {data.shape[0]} observations x {data.shape[1]} attributes")

    step += 1
    print(f"\n[{step}/{steps}] Running K-Means (k={args.groups}, init={args.init})...")
    try:
        model, result = run_clustering(
            data, args.groups,
            initialization_rule=InitializationRule(args.init),
            stopping_rules=stopping_rules_from_args(args),
            seed=args.seed,
            show_diagnostics=args.diagnostics,
        )
    except ValueError as exc:
        raise SystemExit(str(exc))
    for g, mean in zip(np.unique(result.groups), result.group_means):
        print(f"  Group {g}: {(result.groups == g).sum()} observations, "
              f"mean = [{', '.join(f'{v:.4g}' for v in mean)}]")

    step += 1
    print(f"\n[{step}/{steps}] Computing quality metrics...")
    print(summarize(data, model, result).to_string(index=False))

    elbow = None
    if args.elbow:
        step += 1
        kmin, kmax = args.elbow
        print(f"\n[{step}/{steps}] Running K-Means elbow method (k={kmin}..{kmax})...")
        try:
            elbow = elbow_curve(data, range(kmin, kmax + 1), seed=args.seed)
        except ValueError as exc:
            raise SystemExit(str(exc))
        print(elbow.to_string(index=False))

    if args.output:
        step += 1
        print(f"\n[{step}/{steps}] Writing assignments to {args.output}...")
        try:
            save_assignments(args.output, frame, result.groups)
        except OSError as exc:
            raise SystemExit(f"Unable to write assignments: {exc}")

    if args.figures:
        step += 1
        print(f"\n[{step}/{steps}] Saving figures to {args.figures}/...")
        labels = tuple(frame.columns[:2])
        try:
            paths = save_figures(args.figures, data, model, result, elbow, labels=labels)
        except OSError as exc:
            raise SystemExit(f"Unable to save figures: {exc}")
        for path in paths:
            print(f"  {path}")

    print("\nDone!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
