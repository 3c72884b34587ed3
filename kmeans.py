import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

import numpy as np

from random_source import SystemRandomSource


class InitializationRule(Enum):
    """How observations are split into the starting groups."""

    # Deal observations round-robin into k groups, then shuffle.
    RANDOM_PARTITIONS = "random"
    # Forgy: k observations picked at random become the starting centroids.
    FORGY = "forgy"
    # Arthur & Vassilvitskii: centroids picked with probability weighted
    # towards observations far from those already chosen.
    KMEANS_PLUS_PLUS = "kmeans++"


@dataclass(frozen=True)
class MaxIterations:
    """Stop after a fixed number of iterations."""

    maximum: int
    reason = "Reached maximum iterations."

    def is_satisfied(self, iteration, distance_change, elapsed):
        return iteration >= self.maximum


@dataclass(frozen=True)
class DistanceChange:
    """Stop once the relative change in mean distance drops below a threshold."""

    threshold: float
    reason = "Reached minimum change threshold."

    def is_satisfied(self, iteration, distance_change, elapsed):
        return distance_change < self.threshold


@dataclass(frozen=True)
class RunTime:
    """Stop once the elapsed wall-clock time exceeds a budget in seconds."""

    seconds: float
    reason = "Reached maximum run time."

    def is_satisfied(self, iteration, distance_change, elapsed):
        return elapsed > self.seconds


STOP_RULE_ORDER = (MaxIterations, DistanceChange, RunTime)
DEFAULT_STOP_RULE = DistanceChange(0.01)


class ClusterResult(NamedTuple):
    groups: np.ndarray
    group_means: np.ndarray


def normalize_stop_rules(rules):
    """De-duplicate stop rules and sort them into evaluation order.

    Iteration caps are checked first, then distance change, then run time, so
    the reported reason is stable when several rules fire together. An empty
    collection falls back to the default distance-change rule.
    """
    unique = []
    for rule in rules:
        if not isinstance(rule, STOP_RULE_ORDER):
            raise ValueError(f"Unknown stopping rule: {rule!r}")
        if rule not in unique:
            unique.append(rule)
    if not unique:
        return (DEFAULT_STOP_RULE,)
    return tuple(sorted(unique, key=lambda r: STOP_RULE_ORDER.index(type(r))))


def as_matrix(rows):
    """Nested sequence of numeric rows -> 2-D float array."""
    matrix = np.array(rows, dtype=float)
    if matrix.ndim == 1:
        matrix = matrix.reshape(-1, 1) if matrix.size else matrix.reshape(0, 0)
    if matrix.ndim != 2:
        raise ValueError(f"Observation matrix must be 2-D, got shape {matrix.shape}")
    return matrix


def row_distance(m1, m2):
    """(n1, m) x (n2, m) -> (n1, n2) matrix of squared euclidean distances."""
    if m1.shape[1] != m2.shape[1]:
        raise ValueError(
            f"Attempted to compute distances for nonconformable matrices "
            f"({m1.shape[1]} vs {m2.shape[1]} columns)"
        )
    return ((m1[:, np.newaxis, :] - m2[np.newaxis, :, :]) ** 2).sum(axis=2)


def nearest_groups(data, centroids):
    """Index of the nearest centroid row and that distance, per observation."""
    distances = row_distance(data, centroids)
    if distances.shape[1] == 0:
        raise ValueError("Attempted to find minimum of empty array.")
    groups = np.argmin(distances, axis=1)
    return groups, distances[np.arange(len(groups)), groups]


def group_means(data, groups, n_groups):
    """Mean row of every non-empty group, in ascending group order."""
    means = [data[groups == g].mean(axis=0) for g in range(n_groups) if np.any(groups == g)]
    return np.array(means).reshape(len(means), data.shape[1])


def group_sizes(groups, n_groups):
    """Number of observations in each of the n_groups groups."""
    return np.bincount(np.asarray(groups, dtype=int), minlength=n_groups)[:n_groups]


def mean_rows(groups):
    """Row of the group mean matrix that belongs to each observation.

    Mean rows exist only for non-empty groups, so ids and rows differ once an
    empty group sits below a populated one.
    """
    groups = np.asarray(groups)
    return np.searchsorted(np.unique(groups), groups)


def rebalanced_groups(groups, n_groups):
    """Split the largest group into every empty group until none is empty.

    The members of the largest group are walked in order with a flag that
    flips on each visit; every member visited while the flag flips to true
    moves to the lowest-numbered empty group, so roughly half move per pass.
    Skipped when there are at least twice as many groups as observations.
    """
    groups = np.array(groups, dtype=int)
    if n_groups >= 2 * len(groups):
        return groups
    counts = group_sizes(groups, n_groups)
    while np.any(counts == 0):
        empty_group = int(np.argmax(counts == 0))
        largest_group = int(np.argmax(counts))
        if counts[largest_group] < 2:
            break
        swap = True
        for i in np.nonzero(groups == largest_group)[0]:
            swap = not swap
            if swap:
                groups[i] = empty_group
        counts = group_sizes(groups, n_groups)
    return groups


def starting_groups(data, n_groups, rule, random_source):
    """Initial group id per observation for the given initialization rule."""
    n = data.shape[0]
    if rule is InitializationRule.RANDOM_PARTITIONS:
        groups = [i % n_groups for i in range(n)]
        random_source.shuffle(groups)
        return np.array(groups, dtype=int)

    if rule is InitializationRule.FORGY:
        sample = sorted(random_source.sample(n, n_groups))
        return nearest_groups(data, data[sample])[0]

    if rule is InitializationRule.KMEANS_PLUS_PLUS:
        chosen = [random_source.randint(n)]
        while len(chosen) < n_groups:
            # Coincident observations get weight 0 so they are not re-picked.
            weights = row_distance(data, data[chosen]).min(axis=1)
            chosen.append(random_source.weighted_choice(weights))
        return nearest_groups(data, data[chosen])[0]

    raise ValueError(f"Unknown initialization rule: {rule!r}")


class ClusterModel:
    """k-means cluster analysis of a dataset.

    Parameters are fixed at construction; ``run`` performs the analysis.
    Large datasets can take several seconds, so run it off the main thread
    when responsiveness matters.
    """

    def __init__(self, data, n_groups, initialization_rule=InitializationRule.RANDOM_PARTITIONS,
                 stopping_rules=(DEFAULT_STOP_RULE,), show_diagnostics=False, output=None):
        data = as_matrix(data)
        if data.size == 0:
            raise ValueError("ClusterModel initialized with no data.")
        if n_groups < 1:
            raise ValueError(f"ClusterModel needs at least one group, got {n_groups}")
        data.flags.writeable = False
        self.data = data
        self.n_groups = int(n_groups)
        self.initialization_rule = InitializationRule(initialization_rule)
        self.stopping_rules = normalize_stop_rules(stopping_rules)
        self.show_diagnostics = show_diagnostics
        self.output = output

    @property
    def n_observations(self):
        return self.data.shape[0]

    @property
    def n_attributes(self):
        return self.data.shape[1]

    @property
    def group_ids(self):
        return range(self.n_groups)

    def _print(self, line):
        if self.show_diagnostics:
            print(line, file=self.output if self.output is not None else sys.stdout)

    def _relative_change(self, old_mean_distance, mean_distance):
        if mean_distance == 0:
            # Every observation sits on its centroid; nothing left to improve.
            return 0.0
        return (old_mean_distance - mean_distance) / mean_distance

    def run(self, random_source=None):
        """Run cluster analysis.

        Returns ``ClusterResult(groups, group_means)``: the group id of every
        observation, and one mean row per non-empty group. Pass a seeded
        ``RandomSource`` for reproducible results.
        """
        if random_source is None:
            random_source = SystemRandomSource()
        start = time.perf_counter()

        def elapsed():
            return time.perf_counter() - start

        self._print(f"Starting cluster analysis of {self.n_observations} observations "
                    f"in {self.n_groups} groups.")
        self._print("Iter.    Dist.    %Cng.     Time")

        old_mean_distance = sys.float_info.max
        groups = starting_groups(self.data, self.n_groups, self.initialization_rule, random_source)
        iteration = 0
        while True:
            iteration += 1
            means = group_means(self.data, groups, self.n_groups)
            groups, min_distances = nearest_groups(self.data, means)
            mean_distance = float(min_distances.mean())
            distance_change = self._relative_change(old_mean_distance, mean_distance)
            old_mean_distance = mean_distance
            self._print("%5d %8.2g %8.2g %8.3g" % (
                iteration, mean_distance, distance_change * 100, elapsed()))

            groups = rebalanced_groups(groups, self.n_groups)
            fired = next((rule for rule in self.stopping_rules
                          if rule.is_satisfied(iteration, distance_change, elapsed())), None)
            if fired is not None:
                self._print(fired.reason)
                break

        self._print("Finished\n%.5g Seconds" % elapsed())
        return ClusterResult(groups, group_means(self.data, groups, self.n_groups))
