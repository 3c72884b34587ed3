import os

import matplotlib
matplotlib.use("Agg")  # non-interactive backend, figures go to disk
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from kmeans import ClusterModel, DistanceChange, InitializationRule, group_sizes, mean_rows
from metrics import calinski_harabasz_score, compute_inertia, silhouette_score
from random_source import SeededRandomSource
from visualization import plot_elbow, plot_group_sizes, plot_groups, save_figure


def load_observations(path, columns=None):
    """Read a CSV file and return its numeric columns as a float matrix."""
    df = pd.read_csv(path)
    if columns:
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise ValueError(f"Columns not found in {path}: {', '.join(missing)}")
        selected = df[list(columns)]
    else:
        selected = df.select_dtypes(include="number")
    if selected.shape[1] == 0:
        raise ValueError(f"No numeric columns in {path}")
    selected = selected.dropna()
    if selected.empty:
        raise ValueError(f"No complete rows in {path}")
    return selected.to_numpy(dtype=float), selected


def run_clustering(data, n_groups, initialization_rule=InitializationRule.RANDOM_PARTITIONS,
                   stopping_rules=(DistanceChange(0.01),), seed=None, show_diagnostics=False):
    """Build a model and run it once; seeded runs are reproducible."""
    model = ClusterModel(data, n_groups, initialization_rule=initialization_rule,
                         stopping_rules=stopping_rules, show_diagnostics=show_diagnostics)
    source = SeededRandomSource(seed) if seed is not None else None
    return model, model.run(source)


def elbow_curve(data, k_values, initialization_rule=InitializationRule.KMEANS_PLUS_PLUS,
                stopping_rules=(DistanceChange(0.01),), seed=None):
    """Inertia of one run per k, as a DataFrame with columns k and inertia."""
    rows = []
    for k in k_values:
        _, result = run_clustering(data, k, initialization_rule, stopping_rules, seed=seed)
        rows.append({"k": k, "inertia": compute_inertia(data, result.groups, result.group_means)})
    return pd.DataFrame(rows, columns=["k", "inertia"])


def posterize(groups, group_means):
    """Replace every observation with the mean row of its group.

    Ids are mapped through ``mean_rows`` since empty groups have no mean row.
    """
    return group_means[mean_rows(groups)]


def summarize(data, model, result):
    """One-row-per-metric table describing a finished run."""
    sizes = group_sizes(result.groups, model.n_groups)
    return pd.DataFrame({
        "Metric": [
            "Observations", "Attributes", "Groups", "Empty Groups",
            "Inertia (SSE)", "Silhouette Score", "Calinski-Harabasz Index",
        ],
        "Value": [
            model.n_observations, model.n_attributes, model.n_groups, int(np.sum(sizes == 0)),
            f"{compute_inertia(data, result.groups, result.group_means):,.2f}",
            f"{silhouette_score(data, result.groups):.4f}",
            f"{calinski_harabasz_score(data, result.groups):.2f}",
        ],
    })


def save_assignments(path, frame, groups):
    """Write the input rows plus a ``group`` column to CSV."""
    out = frame.copy()
    out["group"] = np.asarray(groups)
    out.to_csv(path, index=False)
    return out


def save_figures(directory, data, model, result, elbow=None, labels=("x", "y")):
    """Write the group scatter, size and (optional) elbow figures."""
    os.makedirs(directory, exist_ok=True)
    paths = []

    fig, ax = plt.subplots(figsize=(14, 9))
    plot_groups(ax, data, result.groups, result.group_means,
                f"K-Means ({model.initialization_rule.value}, k={model.n_groups})", labels=labels)
    paths.append(os.path.join(directory, "groups.png"))
    save_figure(fig, paths[-1])

    fig, ax = plt.subplots(figsize=(10, 5))
    plot_group_sizes(ax, result.groups, model.n_groups, "Group Sizes")
    paths.append(os.path.join(directory, "group_sizes.png"))
    save_figure(fig, paths[-1])

    if elbow is not None:
        fig, ax = plt.subplots(figsize=(10, 6))
        plot_elbow(ax, elbow)
        paths.append(os.path.join(directory, "elbow.png"))
        save_figure(fig, paths[-1])

    return paths
