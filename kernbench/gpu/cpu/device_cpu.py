import inspect
import numpy as np
from typing import Any, Optional, Sequence, Tuple

from ..device import Device
from ...errors import ModuleLoadError, TransferError, LaunchError, DeviceExecutionError
from .kernels_cpu import KERNELS

EMULATED_MODULE = "builtin:vector_ops"

class EmulatedModule:
    """A kernel module whose entry points are numpy functions."""
    def __init__(self, kernels: dict):
        self.kernels = dict(kernels)

class CPUDevice(Device):
    """Emulated device: device memory is host bytes and kernels run through numpy.

    Only ever selected on request. It honors launch geometry and bounds like a real device, which lets the
    whole harness run where no accelerator is present.
    """
    name = "CPU"
    max_work_group_size = 1024

    def __init__(self):
        self.open = True

    def is_available(self) -> bool:
        return self.open

    def allocate_memory(self, nbytes: int):
        try:
            return np.zeros(nbytes, dtype=np.uint8)
        except MemoryError as e:
            raise TransferError(f"allocating {nbytes} bytes on the emulated device failed") from e

    def free_memory(self, handle) -> None:
        pass

    def upload_tensor(self, host_array: np.ndarray):
        try:
            return host_array.view(np.uint8).reshape(-1).copy()
        except MemoryError as e:
            raise TransferError(f"uploading {host_array.nbytes} bytes to the emulated device failed") from e

    def copy_to_device(self, handle, host_array: np.ndarray) -> None:
        handle[:] = host_array.view(np.uint8).reshape(-1)

    def download_tensor(self, handle, out: np.ndarray) -> None:
        out.reshape(-1).view(np.uint8)[:] = handle

    def address_of(self, handle) -> int:
        return handle.ctypes.data

    def load_module(self, source: Any) -> EmulatedModule:
        if source != EMULATED_MODULE:
            raise ModuleLoadError(f"the emulated CPU device only loads '{EMULATED_MODULE}', got {source}")
        return EmulatedModule(KERNELS)

    def entry_points(self, module: EmulatedModule) -> Tuple[str, ...]:
        return tuple(module.kernels)

    def get_function(self, module: EmulatedModule, name: str):
        return module.kernels[name]

    def num_args(self, function) -> Optional[int]:
        # the first two parameters receive the dispatch geometry
        return len(inspect.signature(function).parameters) - 2

    def execute_kernel(self, function, grid_size: tuple, threadgroup_size: tuple, args: Sequence[Any]):
        if threadgroup_size[0] > self.max_work_group_size:
            raise LaunchError(f"{function.__name__}: work group of {threadgroup_size[0]} exceeds {self.max_work_group_size} on the emulated device")
        try:
            function(grid_size[0], threadgroup_size[0], *args)
        except (ValueError, TypeError, IndexError) as e:
            raise DeviceExecutionError(f"{function.__name__} faulted on the emulated device: {e}") from e

    def synchronize(self) -> None:
        """CPU is always synchronized."""
        pass

    def get_capabilities(self) -> dict:
        return {
            "name": "CPU (emulated)",
            "available": self.open,
            "max_work_group_size": self.max_work_group_size,
        }

    def close(self) -> None:
        self.open = False
