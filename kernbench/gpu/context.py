"""
- `DeviceContext.open()`: open the single connection to the compute device
- `DeviceContext.close()`: release every buffer still alive and drop the connection
- `DeviceContext.check()`: guard used by buffers, registries and invokers before touching the device
"""

import atexit
from typing import Dict, Optional

from kernbench.errors import HarnessError, DeviceUnavailable, DeviceExecutionError
from kernbench.helpers import getenv, debug
from kernbench.gpu.device import Device
from kernbench.gpu.cl.device_cl import OpenCLDevice
from kernbench.gpu.cpu.device_cpu import CPUDevice

# Supported device types; the environment switches are checked in this order
SUPPORTED_DEVICES = ["OPENCL", "CPU"]

def create_device(name: str) -> Device:
    name = name.upper()
    if name == "OPENCL": return OpenCLDevice()
    if name == "CPU": return CPUDevice()
    raise DeviceUnavailable(f"unknown device {name}, expected one of {', '.join(SUPPORTED_DEVICES)}")

class DeviceContext:
    """
    Owns the connection to one compute device for the lifetime of the process.
    Every buffer created through the context is tracked so close() can release it, newest first.
    """
    _active: Optional["DeviceContext"] = None

    def __init__(self, device: Device):
        self.device = device
        self.failure: Optional[BaseException] = None
        self.closed = False
        self._buffers: Dict[int, object] = {}

    @classmethod
    def open(cls, device: Optional[str] = None) -> "DeviceContext":
        if cls._active is not None and not cls._active.closed:
            raise DeviceUnavailable(f"a device context is already open in this process ({cls._active.name}), close it first")
        if device is None:
            device = next((name for name in SUPPORTED_DEVICES if getenv(name, 0) == 1), "OPENCL")
        dev = create_device(device)
        if not dev.is_available():
            raise DeviceUnavailable(f"{device} device is not available")
        ctx = cls(dev)
        cls._active = ctx
        atexit.register(ctx.close)
        debug(f"opened {ctx.name} device: {dev.get_capabilities().get('name', 'unnamed')}")
        return ctx

    @property
    def name(self) -> str:
        return self.device.name

    @property
    def failed(self) -> bool:
        return self.failure is not None

    @property
    def live_buffers(self) -> int:
        return len(self._buffers)

    def check(self) -> None:
        if self.closed:
            raise DeviceUnavailable(f"{self.name} device context is closed")
        if self.failure is not None:
            raise DeviceExecutionError(f"{self.name} device context failed earlier ({self.failure}), re-create it")

    def fail(self, err: BaseException) -> None:
        if self.failure is None: self.failure = err

    def track(self, buffer) -> None:
        self._buffers[id(buffer)] = buffer

    def untrack(self, buffer) -> None:
        self._buffers.pop(id(buffer), None)

    def synchronize(self) -> None:
        self.check()
        try:
            self.device.synchronize()
        except DeviceExecutionError as e:
            self.fail(e)
            raise

    def get_capabilities(self) -> dict:
        return self.device.get_capabilities()

    def close(self) -> None:
        if self.closed: return
        for buffer in reversed(list(self._buffers.values())):
            try:
                buffer.release()
            except HarnessError as e:
                print(f"Warning: releasing {buffer!r} failed: {e}")
        self._buffers.clear()
        self.device.close()
        self.closed = True
        if DeviceContext._active is self: DeviceContext._active = None
        atexit.unregister(self.close)
        debug(f"closed {self.name} device")

    def __enter__(self) -> "DeviceContext":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "failed" if self.failed else "open"
        return f"<DeviceContext {self.name} {state}, {self.live_buffers} buffers>"
