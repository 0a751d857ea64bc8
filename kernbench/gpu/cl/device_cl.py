import pathlib
import numpy as np
from typing import Any, Optional, Sequence, Tuple

from ..device import Device
from ...errors import DeviceUnavailable, ModuleLoadError, TransferError, LaunchError, DeviceExecutionError

# check if OpenCL is available
try:
    import pyopencl as cl
    CL_AVAILABLE = True
except ImportError:
    cl = None
    CL_AVAILABLE = False

class OpenCLDevice(Device):
    """OpenCL device implementation. Kernel modules are program binaries (or SPIR-V) built ahead of time."""
    name = "OpenCL"

    def __init__(self):
        """Initialize the OpenCL context and its single command queue."""
        self.cl_ctx = None
        self.cl_queue = None
        if not CL_AVAILABLE:
            raise DeviceUnavailable("No OpenCL support! Install pyopencl")
        try:
            try:
                self.cl_ctx = cl.create_some_context(answers=[0])
            except (cl.RuntimeError, TypeError):
                self.cl_ctx = cl.create_some_context(interactive=False)
            self.cl_queue = cl.CommandQueue(self.cl_ctx)
        except (cl.Error, RuntimeError) as e:
            raise DeviceUnavailable(f"OpenCL initialization failed: {e}") from e

    def is_available(self) -> bool:
        return self.cl_ctx is not None and self.cl_queue is not None

    # memory

    def allocate_memory(self, nbytes: int):
        # zeroed on the device, no host copy
        try:
            buf = cl.Buffer(self.cl_ctx, cl.mem_flags.READ_WRITE, nbytes)
            cl.enqueue_fill_buffer(self.cl_queue, buf, np.uint8(0), 0, nbytes)
            return buf
        except cl.Error as e:
            raise TransferError(f"allocating {nbytes} bytes on {self.device_name} failed: {e}") from e

    def free_memory(self, handle) -> None:
        try:
            handle.release()
        except cl.Error as e:
            raise TransferError(f"releasing device buffer failed: {e}") from e

    def upload_tensor(self, host_array: np.ndarray):
        try:
            return cl.Buffer(self.cl_ctx, cl.mem_flags.READ_WRITE | cl.mem_flags.COPY_HOST_PTR, hostbuf=host_array)
        except cl.Error as e:
            raise TransferError(f"uploading {host_array.nbytes} bytes to {self.device_name} failed: {e}") from e

    def copy_to_device(self, handle, host_array: np.ndarray) -> None:
        try:
            cl.enqueue_copy(self.cl_queue, handle, host_array, is_blocking=True)
        except cl.Error as e:
            raise TransferError(f"copy of {host_array.nbytes} bytes to {self.device_name} failed: {e}") from e

    def download_tensor(self, handle, out: np.ndarray) -> None:
        try:
            cl.enqueue_copy(self.cl_queue, out, handle, is_blocking=True)
        except cl.Error as e:
            raise TransferError(f"copy of {out.nbytes} bytes from {self.device_name} failed: {e}") from e

    def address_of(self, handle) -> int:
        return handle.int_ptr

    # modules and kernels

    def load_module(self, source: Any):
        if not isinstance(source, pathlib.Path):
            raise ModuleLoadError(f"OpenCL device loads program binaries from files, got {source!r}")
        try:
            binary = source.read_bytes()
        except OSError as e:
            raise ModuleLoadError(f"cannot read kernel module {source}: {e}") from e
        try:
            if source.suffix == ".spv":
                program = cl.Program(self.cl_ctx, binary)
            else:
                devices = self.cl_ctx.devices
                program = cl.Program(self.cl_ctx, devices, [binary] * len(devices))
            return program.build()
        except cl.Error as e:
            raise ModuleLoadError(f"kernel module {source} is not loadable on {self.device_name}: {e}") from e

    def entry_points(self, module) -> Tuple[str, ...]:
        try:
            names = module.get_info(cl.program_info.KERNEL_NAMES)
        except cl.Error:
            return ()
        return tuple(n for n in names.split(";") if n)

    def get_function(self, module, name: str):
        names = self.entry_points(module)
        if names and name not in names:
            raise KeyError(name)
        try:
            return cl.Kernel(module, name)
        except cl.Error as e:
            raise KeyError(name) from e

    def num_args(self, function) -> Optional[int]:
        return function.get_info(cl.kernel_info.NUM_ARGS)

    def execute_kernel(self, function, grid_size: tuple, threadgroup_size: tuple, args: Sequence[Any]):
        try:
            return function(self.cl_queue, grid_size, threadgroup_size, *args)
        except (cl.LogicError, TypeError) as e:
            raise LaunchError(f"launching {function.function_name} failed: {e}") from e
        except cl.Error as e:
            raise DeviceExecutionError(f"{function.function_name} failed on {self.device_name}: {e}") from e

    def synchronize(self) -> None:
        try:
            self.cl_queue.finish()
        except cl.Error as e:
            raise DeviceExecutionError(f"device fault on {self.device_name}: {e}") from e

    @property
    def device_name(self) -> str:
        return self.cl_ctx.devices[0].name if self.cl_ctx is not None else "closed OpenCL device"

    def get_capabilities(self) -> dict:
        """Query device capabilities."""
        if not self.is_available():
            return {"name": "None", "available": False}
        device = self.cl_ctx.devices[0]
        return {
            "name": device.name,
            "available": True,
            "max_work_group_size": device.max_work_group_size,
            "max_compute_units": device.max_compute_units,
            "global_mem_size": device.global_mem_size,
            "version": device.version,
        }

    def close(self) -> None:
        self.cl_queue = None
        self.cl_ctx = None
