import numpy as np

from kmeans import mean_rows
from random_source import SeededRandomSource

SILHOUETTE_SAMPLE = 3000


def compute_inertia(data, groups, group_means=None):
    """Sum of squared distances from each observation to its group mean.

    ``group_means`` holds one row per non-empty group in ascending id order,
    as returned by ``ClusterModel.run``.
    """
    groups = np.asarray(groups)
    present = np.unique(groups)
    if group_means is None:
        return float(sum(np.sum((data[groups == g] - data[groups == g].mean(axis=0)) ** 2)
                         for g in present))
    if len(group_means) != len(present):
        raise ValueError(
            f"Expected one mean row per non-empty group ({len(present)}), got {len(group_means)}"
        )
    return float(np.sum((data - group_means[mean_rows(groups)]) ** 2))


def silhouette_score(data, groups, sample_size=SILHOUETTE_SAMPLE, seed=42):
    """Mean Silhouette Coefficient (subsampled for efficiency)."""
    groups = np.asarray(groups)
    n = len(data)
    if len(np.unique(groups)) < 2:
        return 0.0

    if n > sample_size:
        idx = np.array(SeededRandomSource(seed).sample(n, sample_size))
        data, groups = data[idx], groups[idx]
        n = sample_size

    present = np.unique(groups)
    if len(present) < 2:
        return 0.0
    sils = np.zeros(n)
    for i in range(n):
        same = groups == groups[i]
        same[i] = False
        if not same.any():
            continue
        dists = np.sqrt(np.sum((data - data[i]) ** 2, axis=1))
        a_i = dists[same].mean()
        b_i = min(dists[groups == g].mean() for g in present if g != groups[i])
        denom = max(a_i, b_i)
        sils[i] = (b_i - a_i) / denom if denom > 0 else 0.0
    return float(sils.mean())


def calinski_harabasz_score(data, groups):
    """Calinski-Harabasz Index: between- to within-group variance ratio."""
    groups = np.asarray(groups)
    n = len(data)
    present = np.unique(groups)
    k = len(present)
    if k < 2 or n <= k:
        return 0.0

    overall_mean = data.mean(axis=0)
    between, within = 0.0, 0.0
    for g in present:
        members = data[groups == g]
        mean = members.mean(axis=0)
        between += len(members) * np.sum((mean - overall_mean) ** 2)
        within += np.sum((members - mean) ** 2)

    return float((between / (k - 1)) / (within / (n - k))) if within > 0 else 0.0
