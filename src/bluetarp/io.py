from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd

from bluetarp.config import FEATURE_COLUMNS, RGB_MAX, RGB_MIN, ClassLabel
from bluetarp.errors import InvalidArgument

logger = logging.getLogger(__name__)

_REQUIRED_COLUMNS = ["class", "red", "green", "blue"]
_CANONICAL_LABELS = {label.lower(): label for label in ClassLabel.ALL}


@dataclass(frozen=True)
class Dataset:
    """Validated pixel table, one row per observation, ordered by ``obs_id``.

    The frame holds ``obs_id`` (1..N), ``red``, ``green``, ``blue`` and
    ``class_label``. The binary target is always derived from ``class_label``.
    """

    frame: pd.DataFrame
    source: Path | None = None

    @property
    def n(self) -> int:
        return int(len(self.frame))

    @property
    def ids(self) -> np.ndarray:
        return self.frame["obs_id"].to_numpy(dtype=int)

    @property
    def features(self) -> np.ndarray:
        return self.frame[FEATURE_COLUMNS].to_numpy(dtype=float)

    @property
    def targets(self) -> np.ndarray:
        return (self.frame["class_label"] == ClassLabel.TARGET).to_numpy(dtype=int)

    @property
    def n_targets(self) -> int:
        return int(np.sum(self.targets))

    def to_frame(self) -> pd.DataFrame:
        out = self.frame.copy()
        out["is_target"] = self.targets.astype(bool)
        return out


def _row_numbers(mask: pd.Series, limit: int = 5) -> list[int]:
    # 1-based data rows, matching obs_id.
    return (np.flatnonzero(mask.to_numpy()) + 1)[:limit].tolist()


def normalize_class_label(raw: str) -> str | None:
    key = "".join(ch for ch in str(raw) if ch.isalnum()).lower()
    return _CANONICAL_LABELS.get(key)


def dataset_from_frame(df: pd.DataFrame, source: Path | None = None) -> Dataset:
    renamed = {c: str(c).strip().lower() for c in df.columns}
    raw = df.rename(columns=renamed)
    missing_cols = [c for c in _REQUIRED_COLUMNS if c not in raw.columns]
    if missing_cols:
        raise InvalidArgument(f"Input table missing columns: {missing_cols}")
    if raw.empty:
        raise InvalidArgument("Input table has no rows")

    raw = raw[_REQUIRED_COLUMNS].reset_index(drop=True)
    na_mask = raw.isna().any(axis=1)
    if na_mask.any():
        raise InvalidArgument(
            f"{int(na_mask.sum())} rows with missing values, first rows: {_row_numbers(na_mask)}"
        )

    out = pd.DataFrame({"obs_id": pd.RangeIndex(start=1, stop=len(raw) + 1, step=1, dtype="int64")})
    for col in FEATURE_COLUMNS:
        values = pd.to_numeric(raw[col], errors="coerce")
        bad = values.isna() | (values != np.floor(values)) | (values < RGB_MIN) | (values > RGB_MAX)
        if bad.any():
            raise InvalidArgument(
                f"Column {col}: {int(bad.sum())} values not integers in [{RGB_MIN}, {RGB_MAX}], "
                f"first rows: {_row_numbers(bad)}"
            )
        out[col] = values.astype("int64").to_numpy()

    labels = raw["class"].map(normalize_class_label)
    unknown = labels.isna()
    if unknown.any():
        seen = sorted(set(raw.loc[unknown, "class"].astype(str)))
        raise InvalidArgument(f"Unknown class labels {seen[:5]}, first rows: {_row_numbers(unknown)}")
    out["class_label"] = labels.to_numpy()
    return Dataset(frame=out, source=source)


def load_pixel_table(path: Path, sep: str = ",") -> Dataset:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing pixel table: {path}")
    df = pd.read_csv(path, sep=sep)
    dataset = dataset_from_frame(df, source=path)
    logger.info(
        "Loaded %d pixels from %s (%d blue tarp)", dataset.n, path, dataset.n_targets
    )
    return dataset
