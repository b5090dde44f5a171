import os

import pandas as pd
import matplotlib.pyplot as plt

from .config import Config
from .data import load_table
from .errors import PipelineError
from .pipeline import run_pipeline

def _fmt_pct(x):
    return f"{100.0*x:.2f}%" if pd.notna(x) else "N/A"

def _fmt_num(x):
    return f"{x:.4f}" if pd.notna(x) else "N/A"

def plot_importance(ranking: pd.DataFrame, features: list, path: str) -> str:
    top = ranking[ranking["feature"].isin(features)].iloc[::-1]  # largest bar on top
    fig = plt.figure(figsize=(7, max(3, 0.4 * len(top) + 1)))
    ax = fig.add_subplot(111)
    ax.barh(top["feature"], top["importance"], xerr=top["std"], edgecolor="black")
    ax.set_xlabel("Mean decrease in accuracy (permutation)")
    ax.set_title(f"Top {len(top)} features by importance")
    fig.tight_layout()
    fig.savefig(path, dpi=160)
    plt.close(fig)
    return path

def render_markdown(result, image_name="feature_importance.png") -> str:
    clf = result.classifier
    m = result.test_eval.metrics
    md = []
    md.append("# Weight Lifting Exercise quality: random forest report\n")

    md.append("## Data\n")
    md.append(f"- Raw training table: {result.raw_shape[0]} rows x {result.raw_shape[1]} columns")
    md.append(f"- After dropping non-numeric and incomplete columns: "
              f"{result.filtered_shape[1] - 1} features")
    md.append(f"- Features kept after importance ranking: {result.n_features}")
    if result.n_features < result.top_k:
        md.append(f"- Note: only {result.n_features} features were available (target {result.top_k})")
    md.append(f"- Train / test rows: {len(result.train_idx)} / {len(result.test_idx)}")
    md.append("")

    md.append("## Feature importance\n")
    top = result.ranking[result.ranking["feature"].isin(result.features)].copy()
    top.insert(0, "rank", range(1, len(top) + 1))
    md.append(top.assign(importance=lambda d: d["importance"].map(_fmt_num),
                         std=lambda d: d["std"].map(_fmt_num))
              .to_markdown(index=False))
    md.append(f"\n![feature importance]({image_name})\n")

    md.append("## Accuracy\n")
    md.append(f"**Training (out-of-bag):** {_fmt_pct(clf.oob_accuracy)}  ")
    md.append(f"**Training (resubstitution):** {_fmt_pct(clf.train_accuracy)}  ")
    md.append(f"**Test split:** {_fmt_pct(m.accuracy)}\n")

    md.append("## Confusion matrix (test split, rows = true class)\n")
    md.append(result.test_eval.confusion.to_markdown())
    md.append("")

    md.append("## Precision / recall / F1\n")
    per_class = m.per_class()
    for col in ("precision", "recall", "f1"):
        per_class[col] = per_class[col].map(_fmt_num)
    md.append(per_class.to_markdown())
    md.append("")
    md.append(f"Macro precision {_fmt_num(m.macro_precision)}, "
              f"macro recall {_fmt_num(m.macro_recall)}, "
              f"macro F1 {_fmt_num(m.macro_f1)}\n")

    if result.external_predictions is not None:
        md.append("## Predictions for the external test file\n")
        md.append(result.external_predictions.to_markdown(index=False))
        md.append("")

    return "\n".join(md)

def write_report(result, outdir=None) -> dict:
    outdir = outdir or Config.REPORT_DIR
    os.makedirs(outdir, exist_ok=True)
    paths = {
        "report": os.path.join(outdir, "report.md"),
        "importance_plot": os.path.join(outdir, "feature_importance.png"),
        "importance_csv": os.path.join(outdir, "feature_importance.csv"),
        "confusion_csv": os.path.join(outdir, "confusion_matrix.csv"),
    }

    plot_importance(result.ranking, result.features, paths["importance_plot"])
    result.ranking.to_csv(paths["importance_csv"], index=False)
    result.test_eval.confusion.to_csv(paths["confusion_csv"])
    if result.external_predictions is not None:
        paths["predictions_csv"] = os.path.join(outdir, "predictions.csv")
        result.external_predictions.to_csv(paths["predictions_csv"], index=False)

    with open(paths["report"], "w", encoding="utf-8") as f:
        f.write(render_markdown(result, image_name=os.path.basename(paths["importance_plot"])))
    return paths

def main():
    try:
        raw = load_table(Config.TRAIN_URL, cache_dir=Config.DATA_DIR)
        external = load_table(Config.TEST_URL, cache_dir=Config.DATA_DIR)
        result = run_pipeline(raw, external=external, seed=Config.RANDOM_STATE)
    except PipelineError as e:
        raise SystemExit(f"Report failed: {e}")

    paths = write_report(result, Config.REPORT_DIR)
    m = result.test_eval.metrics
    print(f"[main] test accuracy {m.accuracy:.4f}, oob accuracy {result.classifier.oob_accuracy:.4f}")
    print(f"[main] predictions: {' '.join(map(str, result.external_predictions['prediction']))}")
    for p in paths.values():
        print(f"Saved: {p}")

if __name__ == "__main__":
    main()
