import matplotlib
matplotlib.use("Agg")  # non-interactive backend, figures go to disk
import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns
from matplotlib.patches import Ellipse

from kmeans import group_sizes

GROUP_COLORS = [
    "#E63946", "#457B9D", "#2A9D8F", "#E9C46A", "#F4A261",
    "#264653", "#6A0572", "#AB83A1", "#1D3557", "#A8DADC",
]

sns.set_style("whitegrid")


def draw_group_ellipse(ax, points, color, alpha=0.15, n_std=2.0):
    """Draw a 2-sigma confidence ellipse around the first two attributes."""
    if len(points) < 3:
        return

    cov = np.cov(points[:, :2], rowvar=False)
    eigenvalues, eigenvectors = np.linalg.eigh(cov)
    order = eigenvalues.argsort()[::-1]
    eigenvalues, eigenvectors = eigenvalues[order], eigenvectors[:, order]

    angle = np.degrees(np.arctan2(eigenvectors[1, 0], eigenvectors[0, 0]))
    width = 2 * n_std * np.sqrt(max(eigenvalues[0], 0))
    height = 2 * n_std * np.sqrt(max(eigenvalues[1], 0))
    mean = points[:, :2].mean(axis=0)

    ax.add_patch(Ellipse(xy=mean, width=width, height=height, angle=angle,
                         facecolor=color, edgecolor="none", alpha=alpha))
    ax.add_patch(Ellipse(xy=mean, width=width, height=height, angle=angle,
                         facecolor="none", edgecolor=color, linewidth=2, alpha=0.9))


def plot_groups(ax, data, groups, group_means, title, show_ellipses=True,
                labels=("x", "y")):
    """Scatter of the first two attributes coloured by group, with mean markers."""
    groups = np.asarray(groups)
    xs = data[:, 0]
    ys = data[:, 1] if data.shape[1] > 1 else np.zeros(len(data))

    for g in np.unique(groups):
        m = groups == g
        color = GROUP_COLORS[g % len(GROUP_COLORS)]
        if show_ellipses and data.shape[1] > 1 and m.sum() > 10:
            draw_group_ellipse(ax, data[m], color, alpha=0.20)
        ax.scatter(xs[m], ys[m], s=10, alpha=0.55, color=color, edgecolors="none",
                   label=f"G{g} ({m.sum()} pts)", zorder=2)

    if len(group_means):
        mean_ys = group_means[:, 1] if group_means.shape[1] > 1 else np.zeros(len(group_means))
        ax.scatter(group_means[:, 0], mean_ys, s=180, c="black", marker="X",
                   edgecolors="white", linewidths=2, label="Means", zorder=4)

    ax.set_title(title, fontsize=14, fontweight="bold", pad=12)
    ax.set_xlabel(labels[0], fontsize=12)
    ax.set_ylabel(labels[1] if len(labels) > 1 else "", fontsize=12)
    ax.legend(fontsize=7, markerscale=2.5, loc="best", framealpha=0.9)
    ax.grid(True, alpha=0.15, linestyle="--")


def plot_group_sizes(ax, groups, n_groups, title, color="#2196F3"):
    """Bar chart of group sizes."""
    sizes = group_sizes(groups, n_groups)
    names = [f"G{i}" for i in range(n_groups)]
    bars = ax.bar(names, sizes, color=color, edgecolor="white", linewidth=1.5)
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.set_ylabel("Number of Observations")
    for bar, val in zip(bars, sizes):
        ax.text(bar.get_x() + bar.get_width() / 2,
                bar.get_height() + max(sizes) * 0.02,
                str(val), ha="center", fontsize=10)


def plot_elbow(ax, elbow):
    """Inertia against k from an ``elbow_curve`` frame."""
    ax.plot(elbow["k"], elbow["inertia"], "bo-", linewidth=2, markersize=8)
    ax.set_xlabel("Number of Groups (k)", fontsize=13)
    ax.set_ylabel("Inertia (SSE)", fontsize=13)
    ax.set_title("K-Means Elbow Method", fontsize=15, fontweight="bold")
    ax.set_xticks(list(elbow["k"]))
    ax.grid(True, alpha=0.3)


def save_figure(fig, path):
    fig.tight_layout()
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
