import numpy as np
from typing import Any, Optional, Tuple

from kernbench.errors import BufferReleased, LengthMismatch
from kernbench.gpu.context import DeviceContext

class DevicePointer:
    """Opaque pointer into a DeviceBuffer. Only valid while the buffer is alive; only kernels consume it."""
    __slots__ = ("buffer",)

    def __init__(self, buffer: "DeviceBuffer"):
        self.buffer = buffer

    @property
    def handle(self) -> Any:
        return self.buffer._live_handle()

    @property
    def dtype(self) -> np.dtype:
        return self.buffer.dtype

    @property
    def address(self) -> int:
        return self.buffer.context.device.address_of(self.handle)

    def __repr__(self) -> str:
        return f"<DevicePointer into {self.buffer!r}>"

class DeviceBuffer:
    """
    A fixed-length device-resident array, owning its device storage exclusively.
    Create one with DeviceBuffer.upload (copy of a host array) or DeviceBuffer.empty (zeroed, for kernel outputs).
    The buffer is a context manager and is released on exit, on every path.
    """

    def __init__(self, context: DeviceContext, handle: Any, length: int, dtype: np.dtype, shape: Optional[Tuple[int, ...]] = None):
        self.context = context
        self.length = int(length)
        self.dtype = np.dtype(dtype)
        self.shape = tuple(shape) if shape is not None else (self.length,)
        self._handle = handle
        context.track(self)

    @classmethod
    def upload(cls, context: DeviceContext, host_array: Any) -> "DeviceBuffer":
        """Allocate a buffer sized to `host_array` and copy every element to the device."""
        context.check()
        data = _host_data(host_array)
        handle = context.device.upload_tensor(data.reshape(-1))
        return cls(context, handle, data.size, data.dtype, data.shape)

    @classmethod
    def empty(cls, context: DeviceContext, length: int, dtype: Any = np.float32) -> "DeviceBuffer":
        """Allocate a zero-filled buffer that only the device writes."""
        context.check()
        dtype = _element_type(np.dtype(dtype))
        if length <= 0: raise ValueError(f"device buffers need at least one element, got {length}")
        handle = context.device.allocate_memory(int(length) * dtype.itemsize)
        return cls(context, handle, length, dtype)

    @property
    def nbytes(self) -> int:
        return self.length * self.dtype.itemsize

    @property
    def released(self) -> bool:
        return self._handle is None

    def _live_handle(self) -> Any:
        if self._handle is None:
            raise BufferReleased(f"{self!r} was used after release")
        return self._handle

    def device_pointer(self) -> DevicePointer:
        self._live_handle()
        return DevicePointer(self)

    def copy_from(self, host_array: Any) -> "DeviceBuffer":
        """Re-fill device storage from a host array of identical length and dtype."""
        handle = self._live_handle()
        self.context.check()
        data = _host_data(host_array)
        if data.size != self.length: raise LengthMismatch(self.length, data.size, "source")
        if data.dtype != self.dtype: raise TypeError(f"source dtype {data.dtype} does not match device buffer dtype {self.dtype}")
        self.context.device.copy_to_device(handle, data.reshape(-1))
        return self

    def download(self, destination: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Copy device storage into `destination`, or into a new array shaped like the uploaded one.
        A destination of the wrong length or dtype is rejected before anything is written to it.
        """
        handle = self._live_handle()
        self.context.check()
        if destination is None:
            destination = np.empty(self.shape, dtype=self.dtype)
        else:
            if not isinstance(destination, np.ndarray): raise TypeError(f"destination must be a numpy array, got {type(destination).__name__}")
            if destination.size != self.length: raise LengthMismatch(self.length, destination.size)
            if destination.dtype != self.dtype: raise TypeError(f"destination dtype {destination.dtype} does not match device buffer dtype {self.dtype}")
            if not destination.flags.writeable: raise ValueError("destination is read-only")
        staging = destination if destination.flags.c_contiguous else np.empty(self.length, dtype=self.dtype)
        self.context.device.download_tensor(handle, staging)
        if staging is not destination: destination[...] = staging.reshape(destination.shape)
        return destination

    def release(self) -> None:
        """Free device storage. Safe to call more than once."""
        if self._handle is None: return
        handle, self._handle = self._handle, None
        try:
            self.context.device.free_memory(handle)
        finally:
            self.context.untrack(self)

    def __len__(self) -> int:
        return self.length

    def __enter__(self) -> "DeviceBuffer":
        return self

    def __exit__(self, *exc) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"<DeviceBuffer {self.length} x {self.dtype} on {self.context.name}{' (released)' if self.released else ''}>"

def _element_type(dtype: np.dtype) -> np.dtype:
    if dtype.kind not in "iuf": raise TypeError(f"device buffers hold integer or floating point elements, got {dtype}")
    return dtype

def _host_data(host_array: Any) -> np.ndarray:
    data = np.ascontiguousarray(host_array)
    _element_type(data.dtype)
    if data.size == 0: raise ValueError("cannot move an empty array to the device")
    return data
