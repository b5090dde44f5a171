import numpy as np
import pandas as pd
from sklearn.tree import DecisionTreeClassifier

from .config import Config
from .data import build_xy

def stratified_head(df, per_class=None, target=None):
    # first rows of each class, original order kept (not a random draw)
    per_class = per_class or Config.SAMPLE_PER_CLASS
    target = target or Config.TARGET
    return df.groupby(target, sort=False, group_keys=False).head(per_class)

#  IMPORTANCE RANKING
def _oob_permutation_importance(X, y, n_estimators, min_leaf, n_repeats, seed):
    """
    Mean decrease in out-of-bag accuracy per feature over a bagged set of
    trees. Each tree is scored on the rows its bootstrap left out, then on
    those rows with one feature permuted. Features a tree never splits on
    contribute a decrease of 0 for that tree.
    """
    rng = np.random.default_rng(seed)
    Xv = X.to_numpy()
    yv = y.to_numpy()
    n, p = Xv.shape

    drops = []
    for _ in range(n_estimators):
        boot = rng.integers(0, n, n)
        oob = np.setdiff1d(np.arange(n), boot)
        if len(oob) == 0:
            continue
        tree = DecisionTreeClassifier(
            min_samples_leaf=min_leaf, max_features="sqrt",
            random_state=int(rng.integers(2**31 - 1)))
        tree.fit(Xv[boot], yv[boot])

        X_oob, y_oob = Xv[oob], yv[oob]
        base = np.mean(tree.predict(X_oob) == y_oob)
        used = set(tree.tree_.feature[tree.tree_.feature >= 0].tolist())
        row = np.zeros(p)
        for j in used:
            scores = []
            for _ in range(n_repeats):
                X_perm = X_oob.copy()
                X_perm[:, j] = rng.permutation(X_perm[:, j])
                scores.append(np.mean(tree.predict(X_perm) == y_oob))
            row[j] = base - np.mean(scores)
        drops.append(row)

    if not drops:
        return np.full(p, np.nan), np.full(p, np.nan)
    drops = np.asarray(drops)
    return drops.mean(axis=0), drops.std(axis=0)

def rank_features(df, per_class=None, seed=None, min_leaf=None, n_estimators=None,
                  n_repeats=None, target=None):
    """
    Rank every feature of a filtered table by mean decrease in out-of-bag
    accuracy when the feature is permuted, using trees grown on a
    stratified sample.

    Returns a frame with columns feature, importance, std; descending by
    importance, ties in original column order. Columns that are constant in
    the sample are placed after all other features.
    """
    target = target or Config.TARGET
    seed = Config.RANDOM_STATE if seed is None else seed
    min_leaf = min_leaf or Config.RANKER_MIN_LEAF
    n_estimators = n_estimators or Config.RANKER_TREES
    n_repeats = n_repeats or Config.IMPORTANCE_REPEATS

    features = [c for c in df.columns if c != target]
    sample = stratified_head(df, per_class=per_class, target=target)
    X, y = build_xy(sample, features, target)
    print(f"[rank_features] stratified sample: {len(sample)} rows, {len(features)} features")

    importance, std = _oob_permutation_importance(
        X, y, n_estimators=n_estimators, min_leaf=min_leaf,
        n_repeats=n_repeats, seed=seed)

    ranking = pd.DataFrame({
        "feature": features,
        "importance": importance,
        "std": std,
        "constant": [X[c].nunique(dropna=False) <= 1 for c in features],
        "order": np.arange(len(features)),
    })
    ranking = ranking.sort_values(
        ["constant", "importance", "order"],
        ascending=[True, False, True],
        kind="mergesort",
    )
    return ranking.drop(columns=["constant", "order"]).reset_index(drop=True)

def select_top(ranking, k=None):
    k = k or Config.TOP_K
    names = ranking["feature"].head(k).tolist()
    if len(names) < k:
        print(f"[select_top] only {len(names)} features available (wanted {k}); using all of them")
    return names

#  PARTITION
def partition(labels, fraction=None, seed=None):
    """Uniform (not stratified) split of row positions into train/test."""
    fraction = Config.TRAIN_FRACTION if fraction is None else fraction
    seed = Config.RANDOM_STATE if seed is None else seed
    if not 0.0 < fraction < 1.0:
        raise ValueError(f"Train fraction must be in (0, 1), got {fraction}")

    n = len(labels)
    n_train = int(np.floor(fraction * n))
    rng = np.random.default_rng(seed)
    train_idx = np.sort(rng.choice(n, size=n_train, replace=False))
    test_idx = np.setdiff1d(np.arange(n), train_idx)
    print(f"[partition] {n_train} train / {len(test_idx)} test rows")
    return train_idx, test_idx

def split_train_test(df, fraction=None, seed=None, target=None):
    target = target or Config.TARGET
    train_idx, test_idx = partition(df[target], fraction=fraction, seed=seed)
    return df.iloc[train_idx].copy(), df.iloc[test_idx].copy()
