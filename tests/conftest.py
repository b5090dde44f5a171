import numpy as np
import pandas as pd
import pytest

CLASSES = ["A", "B", "C", "D", "E"]
INFORMATIVE = [f"sensor_{i}" for i in range(8)]
NOISE = [f"noise_{i}" for i in range(6)]

# small forests keep the suite fast
FAST = dict(ranker_trees=30, n_repeats=2, n_trees=60)


def _features(rng, labels):
    codes = np.array([CLASSES.index(c) for c in labels])
    cols = {}
    for j, name in enumerate(INFORMATIVE):
        cols[name] = codes * 10.0 + j + rng.normal(0, 0.5, len(codes))
    for name in NOISE:
        cols[name] = rng.normal(0, 1, len(codes))
    cols["const_flag"] = np.zeros(len(codes))
    return cols


def make_training_frame(n_per_class=60, seed=0):
    """Separable 5-class table sorted by class, with text and incomplete columns mixed in."""
    rng = np.random.default_rng(seed)
    labels = np.repeat(CLASSES, n_per_class)
    n = len(labels)
    df = pd.DataFrame({
        "user_name": rng.choice(["adelmo", "carlitos", "pedro"], n),
        "cvtd_timestamp": ["05/12/2011 11:23"] * n,
        "new_window": rng.choice(["no", "yes"], n),
    })
    for name, values in _features(rng, labels).items():
        df[name] = values
    gappy = rng.normal(0, 1, n)
    gappy[::7] = np.nan
    df["kurtosis_roll"] = gappy
    df["classe"] = labels
    return df


def make_external_frame(n=20, seed=1):
    rng = np.random.default_rng(seed)
    labels = [CLASSES[i % 5] for i in range(n)]
    df = pd.DataFrame({"user_name": ["pedro"] * n})
    for name, values in _features(rng, labels).items():
        df[name] = values
    df["kurtosis_roll"] = np.nan
    df["problem_id"] = np.arange(1, n + 1)
    return df, labels


@pytest.fixture
def raw_frame():
    return make_training_frame()


@pytest.fixture
def external_frame():
    df, _ = make_external_frame()
    return df


@pytest.fixture
def external_truth():
    _, labels = make_external_frame()
    return labels


@pytest.fixture
def filtered_frame(raw_frame):
    from wle.data import filter_features
    return filter_features(raw_frame)
