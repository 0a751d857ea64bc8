"""
numpy emulation of the vector_ops entry points.
Each kernel receives the dispatch geometry followed by the arguments the device version declares:
pointers arrive as raw byte arrays, scalars as sized numpy scalars.
Work is distributed the way the OpenCL kernels distribute it: work item g visits elements g, g+global, g+2*global, ...
and every work group writes one partial sum.
"""

import numpy as np
from ...errors import DeviceExecutionError
from ...helpers import ceildiv

def _view(mem: np.ndarray, n: int, kernel: str) -> np.ndarray:
  # a negative length runs zero iterations, as the grid-stride loops do
  v = mem.view(np.float32)
  if n > v.shape[0]:
    raise DeviceExecutionError(f"{kernel}: out of bounds access, n={n} but the buffer holds {v.shape[0]} elements")
  return v[:max(n, 0)]

def _group_partials(x: np.ndarray, global_size: int, local_size: int) -> np.ndarray:
  # element i is visited by work item i % global_size, which sits in group (i % global_size) // local_size
  rows = max(ceildiv(x.shape[0], global_size), 1)
  padded = np.zeros(rows * global_size, dtype=np.float32)
  padded[:x.shape[0]] = x
  return padded.reshape(rows, global_size // local_size, local_size).sum(axis=(0, 2), dtype=np.float64).astype(np.float32)

def _store_partials(mem: np.ndarray, partials: np.ndarray, kernel: str) -> None:
  out = mem.view(np.float32)
  if out.shape[0] < partials.shape[0]:
    raise DeviceExecutionError(f"{kernel}: out of bounds access, {partials.shape[0]} work groups but room for {out.shape[0]} partial sums")
  out[:partials.shape[0]] = partials

def SetKernel(global_size, local_size, n, v, value):
  _view(v, n, "SetKernel")[:] = value

def FactorKernel(global_size, local_size, n, v, value):
  _view(v, n, "FactorKernel")[:] *= value

def AddKernel(global_size, local_size, n, v, value):
  _view(v, n, "AddKernel")[:] += value

def VectorDotProduct(global_size, local_size, n, a, b, partial):
  x = _view(a, n, "VectorDotProduct") * _view(b, n, "VectorDotProduct")
  _store_partials(partial, _group_partials(x, global_size, local_size), "VectorDotProduct")

def VectorSum(global_size, local_size, n, v, partial):
  _store_partials(partial, _group_partials(_view(v, n, "VectorSum"), global_size, local_size), "VectorSum")

KERNELS = {fxn.__name__: fxn for fxn in (SetKernel, FactorKernel, AddKernel, VectorDotProduct, VectorSum)}
