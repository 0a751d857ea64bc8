import os
import unittest
from unittest import mock
import pytest
from kernbench import DeviceContext, DeviceBuffer, CPUDevice, OpenCLDevice, DeviceUnavailable, DeviceExecutionError
from kernbench.gpu import CL_AVAILABLE

def test_opencl_device():
    # Skip the test if no OpenCL device is present
    if not CL_AVAILABLE:
        pytest.skip("pyopencl is not installed")
    try:
        ctx = DeviceContext.open("OPENCL")
    except DeviceUnavailable:
        pytest.skip("No OpenCL device available for testing")
    with ctx:
        caps = ctx.get_capabilities()
        assert caps["available"], "OpenCL device reported as unavailable"
        assert caps["max_work_group_size"] > 0

class TestDeviceContext(unittest.TestCase):
    def setUp(self):
        self.ctx = DeviceContext.open("CPU")

    def tearDown(self):
        self.ctx.close()

    def test_open(self):
        self.assertIsInstance(self.ctx.device, CPUDevice)
        self.assertEqual(self.ctx.name, "CPU")
        self.assertFalse(self.ctx.closed)
        self.assertFalse(self.ctx.failed)

    def test_single_context(self):
        with self.assertRaises(DeviceUnavailable):
            DeviceContext.open("CPU")
        self.ctx.close()
        self.ctx = DeviceContext.open("cpu")
        self.assertFalse(self.ctx.closed)

    def test_close_is_idempotent(self):
        self.ctx.close()
        self.ctx.close()
        self.assertTrue(self.ctx.closed)
        self.assertFalse(self.ctx.device.is_available())
        with self.assertRaises(DeviceUnavailable):
            self.ctx.check()

    def test_close_releases_buffers(self):
        bufs = [DeviceBuffer.upload(self.ctx, [1.0, 2.0, 3.0]) for _ in range(3)]
        self.assertEqual(self.ctx.live_buffers, 3)
        self.ctx.close()
        self.assertEqual(self.ctx.live_buffers, 0)
        self.assertTrue(all(b.released for b in bufs))

    def test_close_on_error_path(self):
        self.ctx.close()
        with self.assertRaises(RuntimeError):
            with DeviceContext.open("CPU") as ctx:
                buf = DeviceBuffer.upload(ctx, [1.0])
                raise RuntimeError("boom")
        self.assertTrue(ctx.closed)
        self.assertTrue(buf.released)

    def test_failed_context(self):
        self.ctx.fail(DeviceExecutionError("fault"))
        self.assertTrue(self.ctx.failed)
        with self.assertRaises(DeviceExecutionError):
            self.ctx.check()
        with self.assertRaises(DeviceExecutionError):
            DeviceBuffer.upload(self.ctx, [1.0])

class TestDeviceSelection(unittest.TestCase):
    def test_unknown_device(self):
        with self.assertRaises(DeviceUnavailable):
            DeviceContext.open("TPU")

    def test_environment_switch(self):
        with mock.patch.dict(os.environ, {"OPENCL": "", "CPU": "1"}):
            with DeviceContext.open() as ctx:
                self.assertEqual(ctx.name, "CPU")

    def test_opencl_unavailable(self):
        with mock.patch("kernbench.gpu.cl.device_cl.CL_AVAILABLE", False):
            with self.assertRaises(DeviceUnavailable):
                DeviceContext.open("OPENCL")
        self.assertIsNone(DeviceContext._active)

    def test_exports(self):
        import kernbench, kernbench.gpu
        for mod in (kernbench, kernbench.gpu):
            for name in mod.__all__:
                self.assertTrue(hasattr(mod, name), name)

class TestOpenCLAllocation(unittest.TestCase):
    def test_empty_buffer_zeroed_on_device(self):
        with mock.patch("kernbench.gpu.cl.device_cl.cl") as cl:
            dev = OpenCLDevice.__new__(OpenCLDevice)
            dev.cl_ctx, dev.cl_queue = mock.sentinel.ctx, mock.sentinel.queue
            buf = dev.allocate_memory(64)
        cl.Buffer.assert_called_once_with(mock.sentinel.ctx, cl.mem_flags.READ_WRITE, 64)
        cl.enqueue_fill_buffer.assert_called_once()
        self.assertIs(cl.enqueue_fill_buffer.call_args[0][1], buf)
        cl.enqueue_copy.assert_not_called()

if __name__ == "__main__":
    unittest.main()
