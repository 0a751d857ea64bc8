"""
The five vector operations, on the device and on the host.
Device versions move every input to the device once and bring one output back; the *_ forms work on
DeviceBuffers in place so several operations can be chained without a round trip.
"""

import os
import numpy as np
from typing import Any, Optional, Union

from kernbench.errors import LengthMismatch
from kernbench.buffer import DeviceBuffer
from kernbench.invoker import KernelInvoker
from kernbench.registry import KernelModule, KernelRegistry, LaunchConfig
from kernbench.gpu.context import DeviceContext

def _vector(v: Any) -> np.ndarray: return np.asarray(v, dtype=np.float32).reshape(-1)

# ***** host *****

def host_fill(v, value) -> np.ndarray: return np.full_like(_vector(v), value)
def host_scale(v, factor) -> np.ndarray: return _vector(v) * np.float32(factor)
def host_add(v, value) -> np.ndarray: return _vector(v) + np.float32(value)
def host_dot(v, w) -> float:
  v, w = _vector(v), _vector(w)
  if v.shape != w.shape: raise LengthMismatch(v.shape[0], w.shape[0], "second vector")
  return float(np.dot(v.astype(np.float64), w.astype(np.float64)))
def host_sum(v) -> float: return float(np.sum(_vector(v), dtype=np.float64))

HOST_OPS = {"fill": host_fill, "scale": host_scale, "add": host_add, "dot": host_dot, "sum": host_sum}

# ***** device *****

class VectorOps:
  """Device implementations of fill, scale, add, dot and sum over float32 vectors."""

  def __init__(self, context: DeviceContext, module: Optional[Union[KernelModule, str, os.PathLike]] = None,
               launch: Optional[LaunchConfig] = None, registry: Optional[KernelRegistry] = None):
    self.context = context
    self.registry = registry if registry is not None else KernelRegistry(context)
    self.module = module if isinstance(module, KernelModule) else self.registry.load_module(module)
    self.launch = launch if launch is not None else LaunchConfig.default()
    self.kernels = self.registry.resolve_standard(self.module, self.launch)
    self.invoker = KernelInvoker(context)

  # in place, on device buffers

  def fill_(self, buf: DeviceBuffer, value) -> DeviceBuffer:
    self.invoker.run(self.kernels["fill"], len(buf), buf, value)
    return buf

  def scale_(self, buf: DeviceBuffer, factor) -> DeviceBuffer:
    self.invoker.run(self.kernels["scale"], len(buf), buf, factor)
    return buf

  def add_(self, buf: DeviceBuffer, value) -> DeviceBuffer:
    self.invoker.run(self.kernels["add"], len(buf), buf, value)
    return buf

  def _reduce(self, op: str, *bufs: DeviceBuffer) -> float:
    # one partial per work group, added up on the host
    with DeviceBuffer.empty(self.context, self.launch.groups_per_dispatch, np.float32) as partials:
      self.invoker.run(self.kernels[op], len(bufs[0]), *bufs, partials)
      return float(partials.download().sum(dtype=np.float64))

  def dot_buffers(self, a: DeviceBuffer, b: DeviceBuffer) -> float:
    if len(a) != len(b): raise LengthMismatch(len(a), len(b), "second vector")
    return self._reduce("dot", a, b)

  def sum_buffer(self, buf: DeviceBuffer) -> float:
    return self._reduce("sum", buf)

  # host in, host out

  def _elementwise(self, op: str, v, value) -> np.ndarray:
    with DeviceBuffer.upload(self.context, _vector(v)) as buf:
      getattr(self, op + "_")(buf, value)
      return buf.download()

  def fill(self, v, value) -> np.ndarray: return self._elementwise("fill", v, value)
  def scale(self, v, factor) -> np.ndarray: return self._elementwise("scale", v, factor)
  def add(self, v, value) -> np.ndarray: return self._elementwise("add", v, value)

  def dot(self, v, w) -> float:
    v, w = _vector(v), _vector(w)
    if v.shape != w.shape: raise LengthMismatch(v.shape[0], w.shape[0], "second vector")
    with DeviceBuffer.upload(self.context, v) as a, DeviceBuffer.upload(self.context, w) as b:
      return self.dot_buffers(a, b)

  def sum(self, v) -> float:
    with DeviceBuffer.upload(self.context, _vector(v)) as buf:
      return self.sum_buffer(buf)
