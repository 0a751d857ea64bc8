import time
import numpy as np
from typing import Any, List, Optional, Sequence

from kernbench.errors import LaunchError, DeviceExecutionError
from kernbench.helpers import debug
from kernbench.buffer import DeviceBuffer, DevicePointer
from kernbench.registry import ArgSpec, KernelHandle
from kernbench.gpu.context import DeviceContext

def bind_pointer(kernel: KernelHandle, i: int, spec: Optional[ArgSpec], arg: Any, context: DeviceContext) -> Any:
    if isinstance(arg, DeviceBuffer): arg = arg.device_pointer()
    if not isinstance(arg, DevicePointer):
        raise LaunchError(f"{kernel.name} argument #{i} must be a device pointer, got {type(arg).__name__}")
    handle = arg.handle
    if arg.buffer.context is not context:
        raise LaunchError(f"{kernel.name} argument #{i} points into a buffer of a different device context")
    if spec is not None and arg.dtype != spec.dtype:
        raise LaunchError(f"{kernel.name} argument #{i} must point to {spec.dtype}, got {arg.dtype}")
    return handle

def bind_scalar(kernel: KernelHandle, i: int, spec: Optional[ArgSpec], arg: Any) -> Any:
    if isinstance(arg, (DeviceBuffer, DevicePointer, np.ndarray)) or isinstance(arg, bool) or not isinstance(arg, (int, float, np.number)):
        raise LaunchError(f"{kernel.name} argument #{i} must be a scalar, got {type(arg).__name__}")
    if spec is None:
        # without a declared signature the width has to come with the value
        if not isinstance(arg, np.number):
            raise LaunchError(f"{kernel.name} has no declared signature, argument #{i} needs a sized numpy scalar")
        return arg
    if spec.dtype.kind in "iu":
        if not isinstance(arg, (int, np.integer)):
            raise LaunchError(f"{kernel.name} argument #{i} must be an integer, got {arg!r}")
        info = np.iinfo(spec.dtype)
        if not info.min <= int(arg) <= info.max:
            raise LaunchError(f"{kernel.name} argument #{i} = {arg} does not fit in {spec.dtype}")
    elif isinstance(arg, np.complexfloating):
        raise LaunchError(f"{kernel.name} argument #{i} must be real, got {arg!r}")
    try:
        with np.errstate(over="ignore"):
            val = spec.dtype.type(arg)
    except OverflowError as e:
        raise LaunchError(f"{kernel.name} argument #{i} does not fit in {spec.dtype}: {e}") from e
    # finite in, infinite out means the value overflowed the parameter type
    if spec.dtype.kind == "f" and not np.isfinite(val) and np.isfinite(float(arg)):
        raise LaunchError(f"{kernel.name} argument #{i} = {arg!r} exceeds the range of {spec.dtype} (max {np.finfo(spec.dtype).max})")
    return val

def bind_args(kernel: KernelHandle, args: Sequence[Any], context: DeviceContext) -> List[Any]:
    """Check `args` against the kernel's parameter list and convert them to what the backend expects."""
    if kernel.signature is None:
        expected = context.device.num_args(kernel.function)
        if expected is not None and expected != len(args):
            raise LaunchError(f"{kernel.name} takes {expected} arguments, got {len(args)}")
        return [bind_pointer(kernel, i, None, a, context) if isinstance(a, (DeviceBuffer, DevicePointer)) else bind_scalar(kernel, i, None, a)
                for i, a in enumerate(args)]
    if len(args) != len(kernel.signature):
        raise LaunchError(f"{kernel.name} takes {len(kernel.signature)} arguments, got {len(args)}")
    return [bind_pointer(kernel, i, spec, a, context) if spec.pointer else bind_scalar(kernel, i, spec, a)
            for i, (spec, a) in enumerate(zip(kernel.signature, args))]

class KernelInvoker:
    """Dispatches resolved kernels one at a time, blocking until the device is done."""

    def __init__(self, context: DeviceContext):
        self.context = context
        self.dispatches = 0

    def run(self, kernel: KernelHandle, *args: Any) -> None:
        self.context.check()
        if kernel.context is not self.context:
            raise LaunchError(f"{kernel.name} was resolved through a different device context")
        bound = bind_args(kernel, args, self.context)
        grid_size, threadgroup_size = kernel.launch.grid()
        st = time.perf_counter()
        try:
            self.context.device.execute_kernel(kernel.function, grid_size, threadgroup_size, bound)
            self.context.device.synchronize()
        except DeviceExecutionError as e:
            self.context.fail(e)
            raise
        self.dispatches += 1
        debug(f"{kernel.name:>18} global={grid_size[0]:<9} local={threadgroup_size[0]:<5} {(time.perf_counter()-st)*1e3:8.3f} ms", 2)
