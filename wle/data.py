import io
import os
from urllib.parse import urlparse

import pandas as pd
import requests

from .config import Config
from .errors import LoadError, SchemaError

# helpers
def _is_url(source):
    return str(source).lower().startswith(("http://", "https://"))

def _cache_path(url, cache_dir):
    name = os.path.basename(urlparse(url).path) or "download.csv"
    return os.path.join(cache_dir, name)

def _fetch(url, timeout):
    # single attempt, no retry
    try:
        r = requests.get(url, timeout=timeout)
        r.raise_for_status()
    except requests.RequestException as e:
        raise LoadError(f"Could not fetch {url}: {e}") from e
    return r.content

def _read_bytes(path):
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise LoadError(f"Could not read {path}: {e}") from e

def _write_cache(path, raw):
    # partial downloads never land under the final name
    tmp = path + ".part"
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(tmp, "wb") as f:
            f.write(raw)
        os.replace(tmp, path)
    except OSError as e:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise LoadError(f"Could not write cache file {path}: {e}") from e

def _parse_csv(raw, source):
    try:
        df = pd.read_csv(io.StringIO(raw.decode("utf-8")), low_memory=False)
    except UnicodeDecodeError as e:
        raise LoadError(f"{source} is not valid UTF-8: {e}") from e
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise LoadError(f"Malformed table {source}: {e}") from e

    # R's write.csv row names come through as an unnamed first column
    first = str(df.columns[0])
    if first == "" or first.startswith("Unnamed: 0"):
        df = df.set_index(df.columns[0])
        df.index.name = None
    return df

#  LOADER
def load_table(source, cache_dir=None, timeout=None):
    """Read a comma-separated table from a URL or a local path."""
    timeout = timeout or Config.HTTP_TIMEOUT
    source = str(source)

    if _is_url(source):
        path = _cache_path(source, cache_dir) if cache_dir else None
        if path and os.path.exists(path):
            print(f"[load_table] using cached copy {path}")
            raw = _read_bytes(path)
        else:
            print(f"[load_table] fetching {source}")
            raw = _fetch(source, timeout)
            if path:
                _write_cache(path, raw)
    else:
        raw = _read_bytes(source)

    df = _parse_csv(raw, source)
    if df.empty:
        raise LoadError(f"Table {source} has no rows.")
    print(f"[load_table] {source}: {df.shape[0]} rows x {df.shape[1]} columns")
    return df

#  FILTER
def filter_features(df, target=None):
    """Numeric, fully populated columns plus the label as the last column."""
    target = target or Config.TARGET
    if target not in df.columns:
        raise SchemaError(f"Label column '{target}' not found. Columns: {list(df.columns)[:10]}...")
    if df[target].isna().any():
        raise SchemaError(f"Label column '{target}' has {int(df[target].isna().sum())} missing values.")

    numeric = df.drop(columns=[target]).select_dtypes(include="number")
    complete = [c for c in numeric.columns if not numeric[c].isna().any()]
    if not complete:
        raise SchemaError("No numeric feature columns without missing values.")

    out = df[complete + [target]].copy()
    print(f"[filter_features] kept {len(complete)} of {df.shape[1] - 1} feature columns")
    return out

def build_xy(df, features, target=None):
    target = target or Config.TARGET
    X = df[list(features)].copy()
    y = df[target].copy()
    return X, y
