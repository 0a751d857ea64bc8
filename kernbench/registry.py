import numpy as np
from dataclasses import dataclass, field
from typing import Any, Dict, NamedTuple, Optional, Sequence, Tuple

from kernbench.errors import ModuleLoadError, SymbolNotFound, LaunchError
from kernbench.helpers import getenv, debug, ceildiv, fetch
from kernbench.gpu.context import DeviceContext

BUILTIN_PREFIX = "builtin:"
# reductions stage one float per work item in a fixed __local array of this size
MAX_THREADS_PER_GROUP = 1024

class ArgSpec(NamedTuple):
    pointer: bool
    dtype: np.dtype

def Scalar(dtype) -> ArgSpec: return ArgSpec(False, np.dtype(dtype))
def Pointer(dtype) -> ArgSpec: return ArgSpec(True, np.dtype(dtype))

# operation -> (entry point, parameter list). every kernel takes the true vector length first
STANDARD_KERNELS: Dict[str, Tuple[str, Tuple[ArgSpec, ...]]] = {
    "fill":  ("SetKernel",        (Scalar(np.int32), Pointer(np.float32), Scalar(np.float32))),
    "scale": ("FactorKernel",     (Scalar(np.int32), Pointer(np.float32), Scalar(np.float32))),
    "add":   ("AddKernel",        (Scalar(np.int32), Pointer(np.float32), Scalar(np.float32))),
    "dot":   ("VectorDotProduct", (Scalar(np.int32), Pointer(np.float32), Pointer(np.float32), Pointer(np.float32))),
    "sum":   ("VectorSum",        (Scalar(np.int32), Pointer(np.float32), Pointer(np.float32))),
}
SIGNATURES = {entry: sig for entry, sig in STANDARD_KERNELS.values()}

@dataclass(frozen=True)
class LaunchConfig:
    """Launch geometry of a kernel: threads per work group and work groups per dispatch."""
    threads_per_group: int
    groups_per_dispatch: int

    def __post_init__(self):
        for name in ("threads_per_group", "groups_per_dispatch"):
            val = getattr(self, name)
            if isinstance(val, bool) or not isinstance(val, (int, np.integer)) or val <= 0:
                raise ValueError(f"{name} must be a positive integer, got {val!r}")

    @property
    def global_size(self) -> int:
        return self.threads_per_group * self.groups_per_dispatch

    def grid(self) -> Tuple[Tuple[int], Tuple[int]]:
        return (int(self.global_size),), (int(self.threads_per_group),)

    @classmethod
    def covering(cls, length: int, threads_per_group: int) -> "LaunchConfig":
        """Geometry with one work item per element, the last group possibly partial."""
        return cls(threads_per_group, max(ceildiv(length, threads_per_group), 1))

    @classmethod
    def default(cls) -> "LaunchConfig":
        return cls(getenv("THREADS_PER_GROUP", 256), getenv("GROUPS_PER_DISPATCH", 1024))

class KernelModule:
    """A loaded kernel module. Failed symbol lookups leave it usable."""
    def __init__(self, context: DeviceContext, location: str, raw: Any):
        self.context = context
        self.location = location
        self.raw = raw

    @property
    def entry_points(self) -> Tuple[str, ...]:
        return self.context.device.entry_points(self.raw)

    def __contains__(self, name: str) -> bool:
        return name in self.entry_points

    def __repr__(self) -> str:
        return f"<KernelModule {self.location}>"

@dataclass(frozen=True)
class KernelHandle:
    """A resolved entry point bound to fixed launch geometry. Holds no device memory."""
    name: str
    launch: LaunchConfig
    signature: Optional[Tuple[ArgSpec, ...]]
    function: Any = field(compare=False, repr=False)
    module: KernelModule = field(compare=False, repr=False)

    @property
    def context(self) -> DeviceContext:
        return self.module.context

class KernelRegistry:
    """
    Loads kernel modules through a DeviceContext and resolves their entry points.
    Modules are cached per location and handles per (module, entry point, geometry, signature), so resolving is paid once.
    """

    def __init__(self, context: DeviceContext):
        self.context = context
        self.modules: Dict[str, KernelModule] = {}
        self.kernels: Dict[Tuple[str, str, LaunchConfig, Optional[Tuple[ArgSpec, ...]]], KernelHandle] = {}

    def load_module(self, location: Optional[Any] = None) -> KernelModule:
        self.context.check()
        if location is None: location = getenv("KERNBENCH_MODULE", "")
        location = str(location)
        if not location: raise ModuleLoadError("no kernel module location given and KERNBENCH_MODULE is not set")
        if location in self.modules: return self.modules[location]

        if location.startswith(BUILTIN_PREFIX):
            source = location
        else:
            try:
                source = fetch(location)
            except OSError as e:
                raise ModuleLoadError(f"cannot fetch kernel module {location}: {e}") from e
            if not source.is_file(): raise ModuleLoadError(f"kernel module {location} does not exist")

        module = KernelModule(self.context, location, self.context.device.load_module(source))
        debug(f"loaded kernel module {location} exporting {', '.join(module.entry_points) or '?'}")
        self.modules[location] = module
        return module

    def resolve_kernel(self, module: KernelModule, entry_point: str, launch: LaunchConfig,
                       signature: Optional[Sequence[ArgSpec]] = None) -> KernelHandle:
        self.context.check()
        if module.context is not self.context:
            raise ModuleLoadError(f"{module!r} was loaded through a different device context")
        limit = min(MAX_THREADS_PER_GROUP, self.context.get_capabilities().get("max_work_group_size", MAX_THREADS_PER_GROUP))
        if launch.threads_per_group > limit:
            raise LaunchError(f"{entry_point}: {launch.threads_per_group} threads per group exceeds the limit of {limit} on {self.context.name}")
        signature = tuple(signature) if signature is not None else SIGNATURES.get(entry_point)
        key = (module.location, entry_point, launch, signature)
        if key in self.kernels: return self.kernels[key]
        try:
            function = self.context.device.get_function(module.raw, entry_point)
        except KeyError:
            raise SymbolNotFound(entry_point, module.location, module.entry_points) from None
        kernel = KernelHandle(entry_point, launch, signature, function, module)
        debug(f"resolved {entry_point} with {launch.threads_per_group} threads x {launch.groups_per_dispatch} groups")
        self.kernels[key] = kernel
        return kernel

    def resolve_standard(self, module: KernelModule, launch: LaunchConfig) -> Dict[str, KernelHandle]:
        """Resolve the five vector entry points, keyed by operation name."""
        return {op: self.resolve_kernel(module, entry, launch, sig) for op, (entry, sig) in STANDARD_KERNELS.items()}
