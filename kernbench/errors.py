"""
Error taxonomy of the harness.
Every error raised by the harness derives from HarnessError, so callers can catch the whole family at once.
"""

class HarnessError(RuntimeError):
    """Base class for every error raised by kernbench."""

class DeviceUnavailable(HarnessError):
    """No compatible accelerator, or the driver/runtime could not be initialized."""

class ModuleLoadError(HarnessError):
    """A kernel module could not be read, parsed, or is incompatible with the active device."""

class SymbolNotFound(HarnessError):
    """A named entry point does not exist in a loaded module."""
    def __init__(self, name: str, location: str, available=()):
        self.name, self.location, self.available = name, location, tuple(available)
        msg = f"entry point '{name}' not found in module {location}"
        if self.available: msg += f" (exports: {', '.join(self.available)})"
        super().__init__(msg)

class TransferError(HarnessError):
    """A host/device copy or device allocation failed."""

class LengthMismatch(HarnessError, ValueError):
    """Host and device arrays differ in length."""
    def __init__(self, expected: int, got: int, what: str = "destination"):
        self.expected, self.got = expected, got
        super().__init__(f"{what} has {got} elements, device buffer has {expected}")

class LaunchError(HarnessError):
    """Kernel arguments do not match the entry point's declared signature."""

class BufferReleased(LaunchError):
    """A device buffer (or a pointer into it) was used after release."""

class DeviceExecutionError(HarnessError):
    """The device reported a fault while executing a kernel."""

class ResultMismatch(HarnessError):
    """Device and host results of a benchmark disagree beyond tolerance."""
    def __init__(self, result):
        self.result = result
        super().__init__(f"{result.name}: device result {result.device_result!r} != host result {result.host_result!r}")
