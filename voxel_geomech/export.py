# voxel_geomech/export.py
"""
Export of a results record: time series CSV, summary JSON, Mohr circles CSV
and a compressed NPZ of the voxel fields.
"""

import json
from pathlib import Path
from typing import Dict, Union

import numpy as np

from .results import GeomechanicalResults

PathLike = Union[str, Path]

FIELD_NAMES = (
    "stress", "strain", "principal", "failure_index", "damage", "fractured",
    "plastic_strain", "crack_density", "pressure", "temperature", "aperture",
    "saturation", "connectivity",
)


def export_time_series_csv(results: GeomechanicalResults, path: PathLike) -> Path:
    path = Path(path)
    results.time_series_frame().to_csv(path, index=False)
    return path


def export_mohr_csv(results: GeomechanicalResults, path: PathLike) -> Path:
    path = Path(path)
    results.mohr_frame().to_csv(path, index=False)
    return path


def export_summary_json(results: GeomechanicalResults, path: PathLike) -> Path:
    """Scalars, Mohr samples and fracture-network size as JSON."""
    path = Path(path)
    payload = {
        "summary": results.summary(),
        "mohr_circles": results.mohr_frame().to_dict(orient="records"),
    }
    path.write_text(json.dumps(payload, indent=2, default=_json_default))
    return path


def export_fields_npz(results: GeomechanicalResults, path: PathLike) -> Path:
    """All populated voxel fields plus the material mask, compressed."""
    path = Path(path)
    arrays: Dict[str, np.ndarray] = {"mask": np.asarray(results.mask)}
    for name in FIELD_NAMES:
        value = getattr(results, name)
        if value is not None:
            arrays[name] = np.asarray(value)
    np.savez_compressed(path, **arrays)
    return path


def load_fields_npz(path: PathLike) -> Dict[str, np.ndarray]:
    with np.load(Path(path)) as data:
        return {k: data[k] for k in data.files}


def _json_default(value):
    if isinstance(value, (np.floating, np.integer, np.bool_)):
        return value.item()
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
    raise TypeError(f"Cannot serialise {type(value).__name__}")
