# voxel_geomech/storage.py
"""
FIELD STORAGE: In-Memory or Disk-Backed Voxel Arrays
=====================================================

Per-voxel fields are plain numpy arrays. For volumes too large for RAM the
same arrays can be backed by files through numpy.memmap: indexing, slicing
and bulk assignment behave identically, so no other module needs to know
which one it got.

Policy: a field is offloaded only when offloading is enabled AND its size
exceeds the configured threshold.
"""

import logging
import os
import uuid
from typing import List, Tuple

import numpy as np

from .params import GeomechanicalParameters

logger = logging.getLogger(__name__)


class FieldStore:
    """
    Allocates zero-initialised field arrays for one run.

    Attributes:
    -----------
    enabled : bool
        Whether disk offload is allowed at all
    directory : str
        Where memmap files are written (one sub-directory per store)
    threshold_bytes : int
        Fields at or below this size always stay in memory
    """

    def __init__(self, enabled: bool = False, directory: str = None,
                 threshold_mb: float = 256.0):
        self.enabled = bool(enabled and directory)
        self.threshold_bytes = int(threshold_mb * 1024 * 1024)
        self.directory = None
        self._files: List[str] = []
        if self.enabled:
            self.directory = os.path.join(directory, f"geomech_{uuid.uuid4().hex[:12]}")
            os.makedirs(self.directory, exist_ok=True)

    @classmethod
    def from_params(cls, params: GeomechanicalParameters) -> "FieldStore":
        return cls(params.enable_offloading, params.offload_directory,
                   params.offload_threshold_mb)

    def zeros(self, shape: Tuple[int, ...], dtype=np.float64, name: str = "field") -> np.ndarray:
        dtype = np.dtype(dtype)
        nbytes = int(np.prod(shape)) * dtype.itemsize
        if not self.enabled or nbytes <= self.threshold_bytes:
            return np.zeros(shape, dtype=dtype)

        path = os.path.join(self.directory, f"{name}.dat")
        logger.info("Offloading field '%s' (%.1f MB) to %s", name, nbytes / 2**20, path)
        arr = np.memmap(path, dtype=dtype, mode="w+", shape=shape)
        arr[...] = 0
        self._files.append(path)
        return arr

    @property
    def files(self) -> List[str]:
        return list(self._files)

