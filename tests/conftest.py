from __future__ import annotations

from pathlib import Path
from uuid import uuid4
import shutil

import numpy as np
import pandas as pd
import pytest

from bluetarp.io import Dataset, dataset_from_frame

_NON_TARP = ["Rooftop", "Soil", "Various Non-Tarp", "Vegetation"]


def _make_synthetic_pixels(
    n_rows: int = 300,
    seed: int = 7,
    tarp_frac: float = 0.15,
    constant_tarp_blue: bool = False,
) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    is_tarp = rng.random(n_rows) < tarp_frac
    # Keep a handful of tarps even for unlucky draws.
    is_tarp[:5] = True
    labels = np.where(is_tarp, "Blue Tarp", rng.choice(_NON_TARP, size=n_rows))

    red = rng.normal(150, 35, n_rows) - 60 * is_tarp
    green = rng.normal(140, 30, n_rows) - 10 * is_tarp
    blue = rng.normal(110, 30, n_rows) + 80 * is_tarp
    if constant_tarp_blue:
        blue = np.where(is_tarp, 255, blue)
    rgb = np.clip(np.rint(np.column_stack([red, green, blue])), 0, 255).astype(int)
    return pd.DataFrame(
        {"Class": labels, "Red": rgb[:, 0], "Green": rgb[:, 1], "Blue": rgb[:, 2]}
    )


@pytest.fixture()
def workspace_tmp_dir() -> Path:
    root = Path(".test_tmp") / str(uuid4())
    root.mkdir(parents=True, exist_ok=True)
    try:
        yield root
    finally:
        shutil.rmtree(root, ignore_errors=True)


@pytest.fixture()
def synthetic_frame() -> pd.DataFrame:
    return _make_synthetic_pixels()


@pytest.fixture()
def pixel_dataset(synthetic_frame: pd.DataFrame) -> Dataset:
    return dataset_from_frame(synthetic_frame)


@pytest.fixture()
def synthetic_input_path(workspace_tmp_dir: Path, synthetic_frame: pd.DataFrame) -> Path:
    path = workspace_tmp_dir / "data" / "HaitiPixels.csv"
    path.parent.mkdir(parents=True, exist_ok=True)
    synthetic_frame.to_csv(path, index=False)
    return path


@pytest.fixture()
def degenerate_input_path(workspace_tmp_dir: Path) -> Path:
    path = workspace_tmp_dir / "data" / "degenerate.csv"
    path.parent.mkdir(parents=True, exist_ok=True)
    _make_synthetic_pixels(constant_tarp_blue=True).to_csv(path, index=False)
    return path
