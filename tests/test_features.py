import math

import numpy as np
import pandas as pd
import pytest

from wle.features import partition, rank_features, select_top, split_train_test, stratified_head


def test_stratified_head_takes_first_rows_per_class(filtered_frame):
    sample = stratified_head(filtered_frame, per_class=5)
    assert sample["classe"].value_counts().tolist() == [5] * 5
    # first rows of each class, original order
    expected = filtered_frame.groupby("classe").head(5).index
    assert list(sample.index) == list(expected)
    assert sample.index.is_monotonic_increasing

def test_stratified_head_cap_larger_than_class(filtered_frame):
    sample = stratified_head(filtered_frame, per_class=400)
    assert len(sample) == len(filtered_frame)

def test_rank_features_orders_and_puts_constant_last(filtered_frame):
    ranking = rank_features(filtered_frame, seed=7, n_estimators=30, n_repeats=2)
    n_features = filtered_frame.shape[1] - 1
    assert list(ranking.columns) == ["feature", "importance", "std"]
    assert len(ranking) == n_features
    assert set(ranking["feature"]) == set(filtered_frame.columns[:-1])

    assert ranking["feature"].iloc[-1] == "const_flag"
    assert ranking["importance"].iloc[-1] == 0.0
    informative = ranking["importance"].iloc[:-1].to_numpy()
    assert np.all(np.diff(informative) <= 0)

def test_rank_features_is_deterministic(filtered_frame):
    a = rank_features(filtered_frame, seed=3, n_estimators=20, n_repeats=2)
    b = rank_features(filtered_frame, seed=3, n_estimators=20, n_repeats=2)
    pd.testing.assert_frame_equal(a, b)

def test_rank_features_breaks_ties_by_column_order():
    df = pd.DataFrame({
        "signal": [0.0] * 20 + [1.0] * 20,
        "flat_b": [5.0] * 40,
        "flat_a": [5.0] * 40,
        "classe": ["A"] * 20 + ["B"] * 20,
    })
    ranking = rank_features(df, seed=0, n_estimators=10, n_repeats=2)
    assert ranking["feature"].tolist() == ["signal", "flat_b", "flat_a"]

def test_select_top():
    ranking = pd.DataFrame({"feature": list("abcdefghijklmn"), "importance": np.linspace(1, 0, 14)})
    assert select_top(ranking, k=12) == list("abcdefghijkl")

def test_select_top_with_fewer_features_uses_all(capsys):
    ranking = pd.DataFrame({"feature": ["x", "y", "z"], "importance": [0.3, 0.2, 0.1]})
    assert select_top(ranking, k=12) == ["x", "y", "z"]
    assert "only 3 features" in capsys.readouterr().out


@pytest.mark.parametrize("n", [1, 2, 10, 33, 100, 1000])
def test_partition_disjoint_exhaustive_sized(n):
    labels = ["A"] * n
    train, test = partition(labels, fraction=0.7, seed=11)
    assert len(train) == math.floor(0.7 * n)
    assert len(train) + len(test) == n
    assert not set(train) & set(test)
    assert sorted(set(train) | set(test)) == list(range(n))

def test_partition_is_deterministic():
    labels = np.arange(250)
    a = partition(labels, fraction=0.7, seed=5)
    b = partition(labels, fraction=0.7, seed=5)
    assert np.array_equal(a[0], b[0]) and np.array_equal(a[1], b[1])
    c = partition(labels, fraction=0.7, seed=6)
    assert not np.array_equal(a[0], c[0])

def test_partition_is_not_stratified():
    # uniform draw over positions; labels only give the length
    sorted_labels = ["A"] * 50 + ["B"] * 50
    shuffled = ["B", "A"] * 50
    assert np.array_equal(partition(sorted_labels, seed=1)[0], partition(shuffled, seed=1)[0])

@pytest.mark.parametrize("fraction", [0.0, 1.0, -0.2, 1.5])
def test_partition_rejects_bad_fraction(fraction):
    with pytest.raises(ValueError):
        partition([1, 2, 3], fraction=fraction)

def test_split_train_test(filtered_frame):
    train_df, test_df = split_train_test(filtered_frame, fraction=0.7, seed=2)
    assert len(train_df) == math.floor(0.7 * len(filtered_frame))
    assert len(train_df) + len(test_df) == len(filtered_frame)
    assert not set(train_df.index) & set(test_df.index)

def test_rank_features_scores_noise_below_signal_out_of_bag():
    rng = np.random.default_rng(0)
    labels = np.repeat(list("ABCDE"), 40)
    codes = np.repeat(np.arange(5), 40)
    df = pd.DataFrame({
        "noise_a": rng.normal(0, 1, 200),
        "signal_a": codes * 4.0 + rng.normal(0, 0.5, 200),
        "noise_b": rng.normal(0, 1, 200),
        "noise_c": rng.normal(0, 1, 200),
        "signal_b": codes * -3.0 + rng.normal(0, 0.5, 200),
        "noise_d": rng.normal(0, 1, 200),
        "classe": labels,
    })
    ranking = rank_features(df, seed=0, n_estimators=50, n_repeats=1)
    assert set(ranking["feature"].head(2)) == {"signal_a", "signal_b"}
    assert ranking["importance"].head(2).min() > 0.1
