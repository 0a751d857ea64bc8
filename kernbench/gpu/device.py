from abc import ABC, abstractmethod
import numpy as np
from typing import Any, Optional, Sequence, Tuple

class Device(ABC):
    """Abstract base class representing a compute device backend.

    Backends translate their native failures into the harness error taxonomy at this seam:
    allocation and copies raise TransferError, module loads raise ModuleLoadError, dispatches
    raise LaunchError or DeviceExecutionError.
    """
    name = "Unknown"

    @abstractmethod
    def is_available(self) -> bool:
        """True once the backend holds a usable connection to the device."""
        ...

    @abstractmethod
    def allocate_memory(self, nbytes: int) -> Any:
        """Allocate `nbytes` zero-filled bytes of device memory and return a handle to the allocation."""
        ...

    @abstractmethod
    def free_memory(self, handle: Any) -> None:
        """Free a previously allocated device allocation."""
        ...

    @abstractmethod
    def upload_tensor(self, host_array: np.ndarray) -> Any:
        """Allocate device memory sized to a contiguous host array and copy the array into it."""
        ...

    @abstractmethod
    def copy_to_device(self, handle: Any, host_array: np.ndarray) -> None:
        """Overwrite an existing allocation with a contiguous host array of the same byte size."""
        ...

    @abstractmethod
    def download_tensor(self, handle: Any, out: np.ndarray) -> None:
        """Copy an allocation into a contiguous host array of the same byte size. Blocks until done."""
        ...

    @abstractmethod
    def address_of(self, handle: Any) -> int:
        """Opaque device address of an allocation. Never dereferenced on the host."""
        ...

    @abstractmethod
    def load_module(self, source: Any) -> Any:
        """Load a precompiled kernel module from a path (or a backend specific identifier)."""
        ...

    @abstractmethod
    def entry_points(self, module: Any) -> Tuple[str, ...]:
        """Names exported by a loaded module, empty if the backend cannot tell."""
        ...

    @abstractmethod
    def get_function(self, module: Any, name: str) -> Any:
        """Look up an entry point, raising KeyError if the module does not export it."""
        ...

    def num_args(self, function: Any) -> Optional[int]:
        """Number of parameters an entry point declares, None if unknown."""
        return None

    @abstractmethod
    def execute_kernel(self, function: Any, grid_size: tuple, threadgroup_size: tuple, args: Sequence[Any]) -> Any:
        """Launch a kernel. `grid_size` is the global work size (threads), `threadgroup_size` the size of each group."""
        ...

    @abstractmethod
    def synchronize(self) -> None:
        """Block until all pending device operations (kernels, memory transfers) have completed."""
        ...

    @abstractmethod
    def get_capabilities(self) -> dict:
        """Query device capabilities (e.g., name, total memory) and return them as a dictionary."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Drop the connection to the device. Must be idempotent."""
        ...
