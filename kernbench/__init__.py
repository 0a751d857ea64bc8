import kernbench.errors
import kernbench.helpers

from kernbench.errors import (
    HarnessError, DeviceUnavailable, ModuleLoadError, SymbolNotFound, TransferError,
    LengthMismatch, LaunchError, BufferReleased, DeviceExecutionError, ResultMismatch
)
from kernbench.gpu import Device, OpenCLDevice, CPUDevice, DeviceContext, EMULATED_MODULE
from kernbench.buffer import DeviceBuffer, DevicePointer
from kernbench.registry import KernelRegistry, KernelModule, KernelHandle, LaunchConfig, Scalar, Pointer, STANDARD_KERNELS
from kernbench.invoker import KernelInvoker
from kernbench.ops import VectorOps, HOST_OPS, host_fill, host_scale, host_add, host_dot, host_sum
from kernbench.benchmark import BenchmarkRunner, BenchmarkResult

__all__ = [
    'HarnessError', 'DeviceUnavailable', 'ModuleLoadError', 'SymbolNotFound', 'TransferError',
    'LengthMismatch', 'LaunchError', 'BufferReleased', 'DeviceExecutionError', 'ResultMismatch',
    'Device', 'OpenCLDevice', 'CPUDevice', 'DeviceContext', 'EMULATED_MODULE',
    'DeviceBuffer', 'DevicePointer',
    'KernelRegistry', 'KernelModule', 'KernelHandle', 'LaunchConfig', 'Scalar', 'Pointer', 'STANDARD_KERNELS',
    'KernelInvoker', 'VectorOps', 'HOST_OPS', 'host_fill', 'host_scale', 'host_add', 'host_dot', 'host_sum',
    'BenchmarkRunner', 'BenchmarkResult',
]
