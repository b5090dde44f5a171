from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from .config import Config
from .data import filter_features
from .evaluate import Evaluation, evaluate, predict
from .features import partition, rank_features, select_top
from .model import TrainedClassifier, train_classifier


@dataclass(frozen=True)
class PipelineResult:
    raw_shape: tuple
    filtered_shape: tuple
    ranking: pd.DataFrame
    features: list
    train_idx: np.ndarray
    test_idx: np.ndarray
    classifier: TrainedClassifier
    test_eval: Evaluation
    top_k: int = Config.TOP_K
    external_predictions: Optional[pd.DataFrame] = None

    @property
    def n_features(self):
        return len(self.features)


def _label_external(external, preds, id_column):
    if id_column in external.columns:
        ids = external[id_column].to_numpy()
    else:
        ids = np.arange(1, len(external) + 1)
    return pd.DataFrame({id_column: ids, "prediction": preds.to_numpy()})


def run_pipeline(raw, external=None, seed=None, per_class=None, top_k=None,
                 fraction=None, n_trees=None, mtry=None, ranker_trees=None,
                 n_repeats=None, target=None):
    """
    Filter -> rank -> reduce -> partition -> train -> evaluate, plus
    predictions for an unlabeled external table when one is given.
    The same seed feeds the ranking sample model and the partition.
    """
    target = target or Config.TARGET
    seed = Config.RANDOM_STATE if seed is None else seed
    top_k = top_k or Config.TOP_K

    filtered = filter_features(raw, target=target)

    ranking = rank_features(
        filtered, per_class=per_class, seed=seed,
        n_estimators=ranker_trees, n_repeats=n_repeats, target=target)
    features = select_top(ranking, k=top_k)
    print(f"[run_pipeline] selected features: {features}")

    reduced = filtered[features + [target]]
    train_idx, test_idx = partition(reduced[target], fraction=fraction, seed=seed)
    train_df = reduced.iloc[train_idx]
    test_df = reduced.iloc[test_idx]

    clf = train_classifier(train_df, features, n_estimators=n_trees, mtry=mtry,
                           seed=seed, target=target)
    test_eval = evaluate(clf, test_df, target=target)

    ext = None
    if external is not None:
        preds = predict(clf, external)
        ext = _label_external(external, preds, Config.ID_COLUMN)
        print(f"[run_pipeline] predicted {len(ext)} external rows")

    return PipelineResult(
        raw_shape=tuple(raw.shape),
        filtered_shape=tuple(filtered.shape),
        ranking=ranking,
        features=features,
        train_idx=train_idx,
        test_idx=test_idx,
        classifier=clf,
        test_eval=test_eval,
        top_k=top_k,
        external_predictions=ext,
    )
