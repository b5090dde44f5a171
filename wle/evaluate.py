from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix as _sk_confusion_matrix

from .config import Config
from .errors import DimensionError, SchemaError


@dataclass(frozen=True)
class Metrics:
    accuracy: float
    precision: pd.Series
    recall: pd.Series
    f1: pd.Series
    support: pd.Series
    macro_precision: float
    macro_recall: float
    macro_f1: float

    def per_class(self) -> pd.DataFrame:
        return pd.DataFrame({
            "precision": self.precision,
            "recall": self.recall,
            "f1": self.f1,
            "support": self.support,
        })


@dataclass(frozen=True)
class Evaluation:
    predictions: pd.Series
    confusion: pd.DataFrame
    metrics: Metrics


def confusion_matrix(y_true, y_pred, classes) -> pd.DataFrame:
    """Square count table, rows = true class, columns = predicted class."""
    classes = list(classes)
    y_true = np.asarray(y_true, dtype=object)
    y_pred = np.asarray(y_pred, dtype=object)
    unknown = (set(y_true.tolist()) | set(y_pred.tolist())) - set(classes)
    if unknown:
        raise ValueError(f"Labels outside the class list: {sorted(map(str, unknown))}")

    if len(y_true) == 0:
        counts = np.zeros((len(classes), len(classes)), dtype=np.int64)
    else:
        counts = _sk_confusion_matrix(y_true, y_pred, labels=classes)
    return pd.DataFrame(
        counts,
        index=pd.Index(classes, name="true"),
        columns=pd.Index(classes, name="predicted"),
    )


def _nanmean(values):
    values = np.asarray(values, dtype=float)
    if np.isnan(values).all():
        return float("nan")
    return float(np.nanmean(values))


def metrics_from_confusion(cm: pd.DataFrame) -> Metrics:
    m = cm.to_numpy(dtype=float)
    tp = np.diag(m)
    predicted = m.sum(axis=0)
    actual = m.sum(axis=1)
    total = m.sum()

    with np.errstate(divide="ignore", invalid="ignore"):
        precision = np.where(predicted > 0, tp / predicted, np.nan)
        recall = np.where(actual > 0, tp / actual, np.nan)
        denom = precision + recall
        f1 = np.where(denom > 0, 2 * precision * recall / denom,
                      np.where(np.isnan(denom), np.nan, 0.0))

    labels = list(cm.index)
    # macro = equal weight per class; undefined classes are skipped
    return Metrics(
        accuracy=float(tp.sum() / total) if total else float("nan"),
        precision=pd.Series(precision, index=labels, name="precision"),
        recall=pd.Series(recall, index=labels, name="recall"),
        f1=pd.Series(f1, index=labels, name="f1"),
        support=pd.Series(actual.astype(np.int64), index=labels, name="support"),
        macro_precision=_nanmean(precision),
        macro_recall=_nanmean(recall),
        macro_f1=_nanmean(f1),
    )


def _feature_frame(clf, df):
    missing = [f for f in clf.features if f not in df.columns]
    if missing:
        raise DimensionError(
            f"Table has {len(clf.features) - len(missing)} of the {len(clf.features)} "
            f"trained features; missing: {missing}")
    X = df[list(clf.features)]
    bad_type = [c for c in X.columns if not pd.api.types.is_numeric_dtype(X[c])]
    if bad_type:
        raise SchemaError(f"Feature columns are not numeric: {bad_type}")
    has_na = [c for c in X.columns if X[c].isna().any()]
    if has_na:
        raise SchemaError(f"Feature columns contain missing values: {has_na}")
    return X


def predict(clf, df) -> pd.Series:
    """Predicted class per row, in input row order. Extra columns are ignored."""
    X = _feature_frame(clf, df)
    return pd.Series(clf.model.predict(X), index=df.index, name="prediction")


def evaluate(clf, df, target=None) -> Evaluation:
    target = target or Config.TARGET
    if target not in df.columns:
        raise SchemaError(f"Label column '{target}' not found in evaluation table.")
    y = df[target]
    if y.isna().any():
        raise SchemaError(f"Label column '{target}' has missing values.")

    preds = predict(clf, df)
    extra = sorted(set(y.tolist()) - set(clf.classes), key=str)
    classes = list(clf.classes) + extra
    cm = confusion_matrix(y, preds, classes)
    metrics = metrics_from_confusion(cm)
    print(f"[evaluate] {len(y)} rows: accuracy {metrics.accuracy:.4f}, "
          f"macro precision {metrics.macro_precision:.4f}, macro recall {metrics.macro_recall:.4f}")
    return Evaluation(predictions=preds, confusion=cm, metrics=metrics)
