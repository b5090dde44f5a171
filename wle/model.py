from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.metrics import accuracy_score

from .config import Config
from .data import build_xy
from .evaluate import confusion_matrix


@dataclass(frozen=True)
class TrainedClassifier:
    model: RandomForestClassifier
    features: tuple
    classes: tuple
    oob_confusion: pd.DataFrame
    oob_accuracy: float
    train_accuracy: float
    n_train: int


def build_forest(n_estimators=None, mtry=None, seed=None, n_jobs=None):
    n_estimators = n_estimators or Config.N_TREES
    mtry = mtry or Config.MTRY
    seed = Config.RANDOM_STATE if seed is None else seed
    n_jobs = n_jobs or Config.N_JOBS
    return RandomForestClassifier(
        n_estimators=n_estimators, max_features=mtry,
        oob_score=True, random_state=seed, n_jobs=n_jobs)


def _oob_predictions(forest, n_rows):
    """Out-of-bag votes; rows never left out of a bootstrap are masked."""
    votes = forest.oob_decision_function_
    seen = np.isfinite(votes).all(axis=1) & (votes.sum(axis=1) > 0)
    preds = np.full(n_rows, None, dtype=object)
    preds[seen] = forest.classes_[np.argmax(votes[seen], axis=1)]
    return preds, seen


def train_classifier(train_df, features, n_estimators=None, mtry=None, seed=None,
                     n_jobs=None, target=None):
    """
    Fit the final forest on the training subset. mtry is fixed rather than
    tuned and no cross-validation is run; the out-of-bag votes give the
    in-training confusion matrix.
    """
    target = target or Config.TARGET
    features = list(features)
    mtry = min(mtry or Config.MTRY, len(features))

    X, y = build_xy(train_df, features, target)
    forest = build_forest(n_estimators=n_estimators, mtry=mtry, seed=seed, n_jobs=n_jobs)
    forest.fit(X, y)

    classes = tuple(forest.classes_.tolist())
    preds, seen = _oob_predictions(forest, len(y))
    oob_cm = confusion_matrix(y.to_numpy()[seen], preds[seen], classes)
    total = oob_cm.to_numpy().sum()
    oob_acc = float(np.trace(oob_cm.to_numpy()) / total) if total else float("nan")
    train_acc = float(accuracy_score(y, forest.predict(X)))

    print(f"[train_classifier] {forest.n_estimators} trees, mtry={mtry}, {len(y)} rows; "
          f"oob accuracy {oob_acc:.4f}, resubstitution accuracy {train_acc:.4f}")

    return TrainedClassifier(
        model=forest,
        features=tuple(features),
        classes=classes,
        oob_confusion=oob_cm,
        oob_accuracy=oob_acc,
        train_accuracy=train_acc,
        n_train=len(y),
    )
