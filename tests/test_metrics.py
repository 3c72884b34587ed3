import tracemalloc

import numpy as np
import pytest

from kmeans import group_means
from metrics import calinski_harabasz_score, compute_inertia, silhouette_score

DATA = np.array([[0.0, 0.0], [0.0, 1.0], [10.0, 0.0], [10.0, 1.0]])
GROUPS = np.array([0, 0, 1, 1])


def test_inertia_from_group_means():
    means = np.array([[0.0, 0.5], [10.0, 0.5]])
    assert compute_inertia(DATA, GROUPS, means) == pytest.approx(1.0)


def test_inertia_without_group_means():
    assert compute_inertia(DATA, GROUPS) == pytest.approx(1.0)
    assert compute_inertia(DATA, [0, 0, 0, 0]) == pytest.approx(101.0)


def test_inertia_with_gapped_group_ids():
    data = np.arange(12, dtype=float).reshape(6, 2)
    groups = np.array([2, 0, 2, 0, 5, 1])
    means = group_means(data, groups, 15)
    assert len(means) == 4
    assert compute_inertia(data, groups, means) == pytest.approx(compute_inertia(data, groups))


def test_inertia_rejects_mismatched_means():
    with pytest.raises(ValueError, match="non-empty group"):
        compute_inertia(DATA, GROUPS, np.zeros((3, 2)))


def test_silhouette_of_separated_groups():
    assert silhouette_score(DATA, GROUPS) > 0.9
    assert silhouette_score(DATA, [0, 0, 0, 0]) == 0.0


def test_silhouette_subsamples_large_inputs():
    rng = np.random.default_rng(1)
    data = np.vstack([rng.normal(size=(60, 2)), rng.normal(size=(60, 2)) + 20])
    groups = np.repeat([0, 1], 60)
    score = silhouette_score(data, groups, sample_size=50, seed=3)
    assert 0.8 < score <= 1.0
    assert score == silhouette_score(data, groups, sample_size=50, seed=3)


def test_silhouette_memory_grows_with_rows_not_pairs():
    rng = np.random.default_rng(0)
    data = rng.normal(size=(1000, 20))
    groups = np.repeat([0, 1], 500)
    tracemalloc.start()
    try:
        silhouette_score(data, groups)
        peak = tracemalloc.get_traced_memory()[1]
    finally:
        tracemalloc.stop()
    assert peak < 50e6


def test_calinski_harabasz():
    # between = 4 * 25 = 100, within = 1
    assert calinski_harabasz_score(DATA, GROUPS) == pytest.approx(200.0)
    assert calinski_harabasz_score(DATA, [0, 0, 0, 0]) == 0.0
