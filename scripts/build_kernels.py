#!/usr/bin/env python3
# Builds the vector_ops OpenCL program for the first available device and writes the program binary
# that kernbench loads at run time (point KERNBENCH_MODULE at it).
# usage: python scripts/build_kernels.py [out.bin] [source.cl]

import sys
import pathlib
import pyopencl as cl

SOURCE = pathlib.Path(__file__).resolve().parent.parent / "kernbench" / "gpu" / "cl" / "vector_ops.cl"

def main():
    out = pathlib.Path(sys.argv[1] if len(sys.argv) > 1 else "vector_ops.bin")
    src = pathlib.Path(sys.argv[2]) if len(sys.argv) > 2 else SOURCE
    try:
        ctx = cl.create_some_context(answers=[0])
    except (cl.RuntimeError, TypeError):
        ctx = cl.create_some_context(interactive=False)
    prg = cl.Program(ctx, src.read_text()).build()
    binaries = prg.get_info(cl.program_info.BINARIES)
    out.write_bytes(binaries[0])
    print(f"built {src.name} for {ctx.devices[0].name}: {out} ({len(binaries[0])} bytes)")
    print(f"export KERNBENCH_MODULE={out.resolve()}")

if __name__ == "__main__":
    main()
