import os

import numpy as np
import pandas as pd
import pytest

from kmeans import InitializationRule, MaxIterations, group_means
from main import main, stopping_rules_from_args, build_parser
from pipeline import (elbow_curve, load_observations, posterize, run_clustering,
                      save_assignments, save_figures, summarize)

ROWS = [[0, 0], [0, 1], [10, 0], [10, 1]]


@pytest.fixture
def csv_path(tmp_path):
    path = tmp_path / "points.csv"
    pd.DataFrame({
        "name": ["a", "b", "c", "d"],
        "x": [0.0, 0.0, 10.0, 10.0],
        "y": [0.0, 1.0, 0.0, 1.0],
    }).to_csv(path, index=False)
    return path


def test_load_observations_keeps_numeric_columns(csv_path):
    data, frame = load_observations(csv_path)
    assert data.shape == (4, 2)
    assert list(frame.columns) == ["x", "y"]


def test_load_observations_selected_columns(csv_path):
    data, _ = load_observations(csv_path, ["y"])
    assert data.tolist() == [[0.0], [1.0], [0.0], [1.0]]


def test_load_observations_missing_column(csv_path):
    with pytest.raises(ValueError, match="Columns not found"):
        load_observations(csv_path, ["z"])


def test_load_observations_without_numbers(tmp_path):
    path = tmp_path / "words.csv"
    path.write_text("word\nalpha\nbeta\n")
    with pytest.raises(ValueError, match="No numeric columns"):
        load_observations(path)


def test_run_clustering_is_seeded():
    model, result = run_clustering(np.array(ROWS, dtype=float), 2, seed=3)
    assert model.n_groups == 2
    assert result.groups.tolist() == [0, 0, 1, 1]


def test_posterize_maps_rows_to_group_means():
    means = np.array([[0.0, 0.5], [10.0, 0.5]])
    assert posterize([1, 0, 1], means).tolist() == [[10.0, 0.5], [0.0, 0.5], [10.0, 0.5]]


def test_posterize_with_gapped_group_ids():
    data = np.arange(12, dtype=float).reshape(6, 2)
    groups = np.array([2, 0, 2, 0, 5, 1])
    means = group_means(data, groups, 15)
    expected = [data[groups == g].mean(axis=0).tolist() for g in groups]
    assert posterize(groups, means).tolist() == expected


def test_elbow_curve_decreases():
    rng = np.random.default_rng(2)
    data = np.vstack([rng.normal(size=(20, 2)) + c for c in ([0, 0], [15, 0], [0, 15])])
    elbow = elbow_curve(data, range(1, 5), seed=7)
    assert elbow["k"].tolist() == [1, 2, 3, 4]
    assert elbow["inertia"].iloc[0] > elbow["inertia"].iloc[2]


def test_summarize_lists_metrics():
    data = np.array(ROWS, dtype=float)
    model, result = run_clustering(data, 2, seed=3)
    table = summarize(data, model, result)
    values = dict(zip(table["Metric"], table["Value"]))
    assert values["Groups"] == 2
    assert values["Empty Groups"] == 0
    assert values["Inertia (SSE)"] == "1.00"


def test_save_assignments(csv_path, tmp_path):
    _, frame = load_observations(csv_path)
    out = tmp_path / "out.csv"
    save_assignments(out, frame, [0, 0, 1, 1])
    assert pd.read_csv(out)["group"].tolist() == [0, 0, 1, 1]


def test_save_figures(tmp_path):
    rng = np.random.default_rng(0)
    data = np.vstack([rng.normal(size=(30, 2)), rng.normal(size=(30, 2)) + 10])
    model, result = run_clustering(data, 2, InitializationRule.FORGY, seed=1)
    elbow = elbow_curve(data, [1, 2], seed=1)
    paths = save_figures(str(tmp_path / "figures"), data, model, result, elbow)
    assert [os.path.basename(p) for p in paths] == ["groups.png", "group_sizes.png", "elbow.png"]
    assert all(os.path.getsize(p) > 0 for p in paths)


def test_stopping_rules_from_args():
    args = build_parser().parse_args(["in.csv", "-k", "2", "--max-iter", "5"])
    assert stopping_rules_from_args(args) == [MaxIterations(5)]
    args = build_parser().parse_args(["in.csv", "-k", "2"])
    assert stopping_rules_from_args(args) == []


def test_main_end_to_end(csv_path, tmp_path, capsys):
    out = tmp_path / "groups.csv"
    figures = tmp_path / "figures"
    assert main([str(csv_path), "-k", "2", "--seed", "3", "--diagnostics",
                 "--output", str(out), "--figures", str(figures), "--elbow", "1", "2"]) == 0

    printed = capsys.readouterr().out
    assert "Reached minimum change threshold." in printed
    assert "Done!" in printed
    assert pd.read_csv(out)["group"].tolist() == [0, 0, 1, 1]
    assert sorted(os.listdir(figures)) == ["elbow.png", "group_sizes.png", "groups.png"]


def test_main_reports_bad_input(tmp_path):
    with pytest.raises(SystemExit, match="Unable to read observations"):
        main([str(tmp_path / "missing.csv"), "-k", "2"])


def test_main_reports_unwritable_output(csv_path, tmp_path):
    with pytest.raises(SystemExit, match="Unable to write assignments"):
        main([str(csv_path), "-k", "2", "--seed", "3",
              "--output", str(tmp_path / "missing" / "groups.csv")])


def test_main_reports_bad_group_count(csv_path):
    with pytest.raises(SystemExit, match="at least one group"):
        main([str(csv_path), "-k", "0"])
