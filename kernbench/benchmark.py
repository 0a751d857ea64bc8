import time
import numpy as np
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from kernbench.errors import ResultMismatch

@dataclass
class BenchmarkResult:
  name: str
  device_result: Any
  host_result: Any
  device_time: float   # seconds: upload + dispatch + download
  host_time: float     # seconds: host computation only

  @property
  def speedup(self) -> float:
    return self.host_time / self.device_time if self.device_time > 0 else float("inf")

  def matches(self, rtol: float = 1e-4, atol: float = 1e-6) -> bool:
    dev, host = np.asarray(self.device_result), np.asarray(self.host_result)
    return dev.shape == host.shape and bool(np.allclose(dev, host, rtol=rtol, atol=atol))

  def __str__(self) -> str:
    return (f"{self.name:>8}: device {_short(self.device_result)} ({self.device_time*1e3:.3f} ms)  "
            f"host {_short(self.host_result)} ({self.host_time*1e3:.3f} ms)  {self.speedup:.2f}x")

def _short(x: Any) -> str:
  if isinstance(x, np.ndarray) and x.size > 6: return f"[{' '.join(f'{v:g}' for v in x[:3])} ... {' '.join(f'{v:g}' for v in x[-3:])}]"
  return f"{x:g}" if isinstance(x, float) else str(x)

class BenchmarkRunner:
  """
  Runs a device path and a host path over the same inputs, timing only each call.
  Setup (module loading, kernel resolution) happens before run_comparison and stays out of the timed window.
  A failing path is reported and its error re-raised; there is no retry and no fallback to the host.
  """

  def __init__(self, rtol: float = 1e-4, atol: float = 1e-6, verify: bool = True, timer: Callable[[], float] = time.perf_counter):
    self.rtol, self.atol, self.verify = rtol, atol, verify
    self.timer = timer
    self.results: List[BenchmarkResult] = []

  def _timed(self, name: str, path: str, fxn: Callable, inputs: Sequence[Any]):
    st = self.timer()
    try:
      ret = fxn(*inputs)
    except Exception as e:
      print(f"{name}: {path} path failed: {type(e).__name__}: {e}")
      raise
    return ret, self.timer() - st

  def run_comparison(self, name: str, host_inputs: Sequence[Any], device_operation: Callable, host_operation: Callable,
                     verify: Optional[bool] = None) -> BenchmarkResult:
    host_inputs = tuple(host_inputs)
    device_result, device_time = self._timed(name, "device", device_operation, host_inputs)
    host_result, host_time = self._timed(name, "host", host_operation, host_inputs)
    result = BenchmarkResult(name, device_result, host_result, device_time, host_time)
    if (self.verify if verify is None else verify) and not result.matches(self.rtol, self.atol):
      print(f"{name}: device and host results disagree")
      raise ResultMismatch(result)
    self.results.append(result)
    return result

  def summary(self) -> str:
    lines = [f"{'op':>8}  {'device ms':>10}  {'host ms':>10}  {'speedup':>8}"]
    for r in self.results:
      lines.append(f"{r.name:>8}  {r.device_time*1e3:10.3f}  {r.host_time*1e3:10.3f}  {r.speedup:7.2f}x")
    return "\n".join(lines)

  def plot(self, path) -> None:
    """bar chart of device vs host time per operation"""
    from matplotlib.figure import Figure
    names = [r.name for r in self.results]
    x = np.arange(len(names))
    fig = Figure(figsize=(max(4, 1.5*len(names)), 4))
    ax = fig.subplots()
    ax.bar(x - 0.2, [r.device_time*1e3 for r in self.results], 0.4, label="device")
    ax.bar(x + 0.2, [r.host_time*1e3 for r in self.results], 0.4, label="host")
    ax.set_xticks(x)
    ax.set_xticklabels(names)
    ax.set_ylabel("time (ms)")
    ax.legend()
    fig.tight_layout()
    fig.savefig(path)
