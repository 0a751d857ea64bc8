import numpy as np
import unittest
from kernbench import (DeviceContext, DeviceBuffer, KernelRegistry, KernelInvoker, KernelHandle, LaunchConfig,
                       EMULATED_MODULE, LaunchError, BufferReleased, DeviceExecutionError)

class TestKernelInvoker(unittest.TestCase):
  def setUp(self):
    self.ctx = DeviceContext.open("CPU")
    registry = KernelRegistry(self.ctx)
    self.module = registry.load_module(EMULATED_MODULE)
    self.launch = LaunchConfig(4, 2)
    self.kernels = registry.resolve_standard(self.module, self.launch)
    self.invoker = KernelInvoker(self.ctx)
    self.buf = DeviceBuffer.upload(self.ctx, np.zeros(10, dtype=np.float32))

  def tearDown(self): self.ctx.close()

  def test_fill_covers_past_global_size(self):
    # 8 work items, 10 elements
    self.invoker.run(self.kernels["fill"], 10, self.buf, 3.0)
    np.testing.assert_array_equal(self.buf.download(), 3.0)
    self.assertEqual(self.invoker.dispatches, 1)

  def test_bounds_checked_against_length(self):
    self.invoker.run(self.kernels["fill"], 6, self.buf, 3.0)
    np.testing.assert_array_equal(self.buf.download(), [3, 3, 3, 3, 3, 3, 0, 0, 0, 0])

  def test_pointer_argument(self):
    self.invoker.run(self.kernels["add"], 10, self.buf.device_pointer(), np.float64(1.5))
    np.testing.assert_array_equal(self.buf.download(), 1.5)

  def test_argument_count(self):
    with self.assertRaises(LaunchError):
      self.invoker.run(self.kernels["fill"], self.buf, 3.0)
    with self.assertRaises(LaunchError):
      self.invoker.run(self.kernels["fill"], 10, self.buf, 3.0, 4.0)

  def test_argument_kinds(self):
    with self.assertRaises(LaunchError):
      self.invoker.run(self.kernels["fill"], 10, self.buf, self.buf)
    with self.assertRaises(LaunchError):
      self.invoker.run(self.kernels["fill"], 10, 3.0, 3.0)
    with self.assertRaises(LaunchError):
      self.invoker.run(self.kernels["fill"], 10, np.zeros(10, dtype=np.float32), 3.0)
    with self.assertRaises(LaunchError):
      self.invoker.run(self.kernels["fill"], 10, self.buf, "3")
    np.testing.assert_array_equal(self.buf.download(), 0)

  def test_integer_parameters(self):
    with self.assertRaises(LaunchError):
      self.invoker.run(self.kernels["fill"], 10.0, self.buf, 3.0)
    with self.assertRaises(LaunchError):
      self.invoker.run(self.kernels["fill"], True, self.buf, 3.0)
    with self.assertRaises(LaunchError):
      self.invoker.run(self.kernels["fill"], 2**40, self.buf, 3.0)
    self.invoker.run(self.kernels["fill"], np.int64(10), self.buf, 3)
    np.testing.assert_array_equal(self.buf.download(), 3.0)

  def test_float_parameters(self):
    with self.assertRaises(LaunchError):
      self.invoker.run(self.kernels["fill"], 10, self.buf, 2**2000)
    with self.assertRaises(LaunchError):
      self.invoker.run(self.kernels["fill"], 10, self.buf, 1e39)
    with self.assertRaises(LaunchError):
      self.invoker.run(self.kernels["scale"], 10, self.buf, np.float64(-1e300))
    np.testing.assert_array_equal(self.buf.download(), 0)
    self.assertEqual(self.invoker.dispatches, 0)
    self.invoker.run(self.kernels["fill"], 10, self.buf, float("inf"))
    np.testing.assert_array_equal(self.buf.download(), np.inf)

  def test_negative_length_runs_nothing(self):
    self.invoker.run(self.kernels["fill"], -3, self.buf, 3.0)
    np.testing.assert_array_equal(self.buf.download(), 0)
    with DeviceBuffer.empty(self.ctx, 2) as partials:
      self.invoker.run(self.kernels["sum"], -3, self.buf, partials)
      np.testing.assert_array_equal(partials.download(), 0)
    self.assertFalse(self.ctx.failed)

  def test_work_group_limit(self):
    # built by hand, bypassing the registry check
    big = KernelHandle("VectorSum", LaunchConfig(2048, 1), self.kernels["sum"].signature,
                       self.module.raw.kernels["VectorSum"], self.module)
    with DeviceBuffer.empty(self.ctx, 1) as partials:
      with self.assertRaises(LaunchError):
        self.invoker.run(big, 10, self.buf, partials)
    self.assertFalse(self.ctx.failed)

  def test_pointer_dtype(self):
    with DeviceBuffer.upload(self.ctx, np.zeros(10, dtype=np.int32)) as ints:
      with self.assertRaises(LaunchError):
        self.invoker.run(self.kernels["fill"], 10, ints, 3.0)

  def test_released_buffer(self):
    ptr = self.buf.device_pointer()
    self.buf.release()
    with self.assertRaises(BufferReleased):
      self.invoker.run(self.kernels["fill"], 10, self.buf, 3.0)
    with self.assertRaises(BufferReleased):
      self.invoker.run(self.kernels["fill"], 10, ptr, 3.0)
    self.assertEqual(self.invoker.dispatches, 0)

  def test_device_fault_fails_context(self):
    with self.assertRaises(DeviceExecutionError):
      self.invoker.run(self.kernels["fill"], 20, self.buf, 3.0)
    self.assertTrue(self.ctx.failed)
    with self.assertRaises(DeviceExecutionError):
      self.invoker.run(self.kernels["fill"], 10, self.buf, 3.0)
    with self.assertRaises(DeviceExecutionError):
      DeviceBuffer.upload(self.ctx, [1.0])
    self.ctx.close()
    self.assertTrue(self.buf.released)

  def test_partials_buffer_too_small(self):
    # 2 work groups need 2 partial sums
    with DeviceBuffer.empty(self.ctx, 1) as partials:
      with self.assertRaises(DeviceExecutionError):
        self.invoker.run(self.kernels["sum"], 10, self.buf, partials)

  def test_kernel_without_signature(self):
    fill = KernelHandle("SetKernel", self.launch, None, self.module.raw.kernels["SetKernel"], self.module)
    with self.assertRaises(LaunchError):
      self.invoker.run(fill, np.int32(10), self.buf)
    with self.assertRaises(LaunchError):
      self.invoker.run(fill, 10, self.buf, np.float32(2.0))
    self.invoker.run(fill, np.int32(10), self.buf, np.float32(2.0))
    np.testing.assert_array_equal(self.buf.download(), 2.0)

if __name__ == '__main__':
  unittest.main()
