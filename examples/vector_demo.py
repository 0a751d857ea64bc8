#!/usr/bin/env python3
# Elementwise kernels on 1..N, then dot product and sum benchmarked against numpy on the host.
#   KERNBENCH_MODULE=vector_ops.bin python examples/vector_demo.py
#   CPU=1 KERNBENCH_MODULE=builtin:vector_ops python examples/vector_demo.py
import numpy as np
from kernbench import DeviceContext, VectorOps, BenchmarkRunner, HOST_OPS, LaunchConfig
from kernbench.helpers import getenv

VECTOR_SIZE = getenv("VECTOR_SIZE", 1048576)
PLOT = getenv("PLOT", "")

def show(name, v):
  print(f"{name}:")
  print("".join(f"{x:>10g}" for x in v[:10]))
  print("...")
  print("".join(f"{x:>10g}" for x in v[-10:]))

if __name__ == "__main__":
  with DeviceContext.open() as ctx:
    print(f"device: {ctx.get_capabilities()['name']}")
    ops = VectorOps(ctx, launch=LaunchConfig(getenv("THREADS_PER_GROUP", 1024), getenv("GROUPS_PER_DISPATCH", 1024)))

    # ********* elementwise trial *********
    for op in ("fill", "scale", "add"):
      show(ops.kernels[op].name, getattr(ops, op)(np.arange(1, VECTOR_SIZE+1, dtype=np.float32), 13))

    # ********* dot and sum *********
    v1, v2 = np.zeros(VECTOR_SIZE, dtype=np.float32), np.zeros(VECTOR_SIZE, dtype=np.float32)
    for i, a, b in ((0, 1, 1), (1, 1, 0), (2, 0, 1), (4, 3, 5), (100, 100, 100), (1058, 20, 100), (500000, 1000, 3000)):
      if i < VECTOR_SIZE: v1[i], v2[i] = a, b

    bench = BenchmarkRunner()
    print(f"\ntaking the dot product of two vectors of size {VECTOR_SIZE}")
    print(bench.run_comparison("dot", (v1, v2), ops.dot, HOST_OPS["dot"]))
    print(f"\nsumming the elements of a vector of size {VECTOR_SIZE}")
    print(bench.run_comparison("sum", (v1,), ops.sum, HOST_OPS["sum"]))
    print()
    print(bench.summary())
    if PLOT: bench.plot(PLOT)
