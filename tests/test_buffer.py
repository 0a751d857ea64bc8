import numpy as np
import unittest
from kernbench import DeviceContext, DeviceBuffer, BufferReleased, LengthMismatch, DeviceUnavailable

class TestDeviceBuffer(unittest.TestCase):
  def setUp(self): self.ctx = DeviceContext.open("CPU")
  def tearDown(self): self.ctx.close()

  def test_round_trip(self):
    rng = np.random.RandomState(1337)
    for dtype in (np.int8, np.uint8, np.int32, np.int64, np.float32, np.float64):
      a = (rng.random(1000) * 100).astype(dtype)
      with DeviceBuffer.upload(self.ctx, a) as buf:
        self.assertEqual(len(buf), 1000)
        self.assertEqual(buf.nbytes, a.nbytes)
        out = buf.download()
        self.assertEqual(out.dtype, a.dtype)
        np.testing.assert_array_equal(out, a)

  def test_round_trip_keeps_shape(self):
    a = np.arange(12, dtype=np.float32).reshape(3, 4)
    with DeviceBuffer.upload(self.ctx, a) as buf:
      self.assertEqual(len(buf), 12)
      np.testing.assert_array_equal(buf.download(), a)

  def test_download_into_destination(self):
    a = np.arange(5, dtype=np.float32)
    dest = np.empty(5, dtype=np.float32)
    with DeviceBuffer.upload(self.ctx, a) as buf:
      self.assertIs(buf.download(dest), dest)
    np.testing.assert_array_equal(dest, a)

  def test_download_into_strided_destination(self):
    a = np.arange(5, dtype=np.float32)
    backing = np.zeros(10, dtype=np.float32)
    with DeviceBuffer.upload(self.ctx, a) as buf:
      buf.download(backing[::2])
    np.testing.assert_array_equal(backing[::2], a)
    np.testing.assert_array_equal(backing[1::2], 0)

  def test_download_length_mismatch(self):
    dest = np.full(4, -1.0, dtype=np.float32)
    with DeviceBuffer.upload(self.ctx, np.arange(5, dtype=np.float32)) as buf:
      with self.assertRaises(LengthMismatch) as cm:
        buf.download(dest)
    self.assertEqual((cm.exception.expected, cm.exception.got), (5, 4))
    np.testing.assert_array_equal(dest, -1.0)

  def test_download_dtype_mismatch(self):
    dest = np.full(5, -1, dtype=np.int32)
    with DeviceBuffer.upload(self.ctx, np.arange(5, dtype=np.float32)) as buf:
      with self.assertRaises(TypeError):
        buf.download(dest)
    np.testing.assert_array_equal(dest, -1)

  def test_copy_from(self):
    with DeviceBuffer.upload(self.ctx, np.zeros(6, dtype=np.float32)) as buf:
      buf.copy_from(np.arange(6, dtype=np.float32))
      np.testing.assert_array_equal(buf.download(), np.arange(6))
      with self.assertRaises(LengthMismatch):
        buf.copy_from(np.arange(7, dtype=np.float32))
      with self.assertRaises(TypeError):
        buf.copy_from(np.arange(6, dtype=np.float64))

  def test_empty(self):
    with DeviceBuffer.empty(self.ctx, 8) as buf:
      self.assertEqual(buf.dtype, np.float32)
      np.testing.assert_array_equal(buf.download(), np.zeros(8, dtype=np.float32))
    with self.assertRaises(ValueError):
      DeviceBuffer.empty(self.ctx, 0)

  def test_rejects_unsupported_arrays(self):
    with self.assertRaises(ValueError):
      DeviceBuffer.upload(self.ctx, np.array([], dtype=np.float32))
    with self.assertRaises(TypeError):
      DeviceBuffer.upload(self.ctx, np.array(["a", "b"]))
    with self.assertRaises(TypeError):
      DeviceBuffer.upload(self.ctx, np.array([1+2j]))
    self.assertEqual(self.ctx.live_buffers, 0)

  def test_device_pointer(self):
    with DeviceBuffer.upload(self.ctx, [1.0, 2.0]) as buf:
      ptr = buf.device_pointer()
      self.assertIs(ptr.buffer, buf)
      self.assertIsInstance(ptr.address, int)
      self.assertNotEqual(ptr.address, 0)

  def test_release(self):
    buf = DeviceBuffer.upload(self.ctx, np.ones(4, dtype=np.float32))
    ptr = buf.device_pointer()
    self.assertEqual(self.ctx.live_buffers, 1)
    buf.release()
    buf.release()
    self.assertTrue(buf.released)
    self.assertEqual(self.ctx.live_buffers, 0)
    with self.assertRaises(BufferReleased):
      buf.device_pointer()
    with self.assertRaises(BufferReleased):
      ptr.handle
    with self.assertRaises(BufferReleased):
      buf.download()
    with self.assertRaises(BufferReleased):
      buf.copy_from(np.ones(4, dtype=np.float32))

  def test_released_on_exception(self):
    with self.assertRaises(KeyError):
      with DeviceBuffer.upload(self.ctx, [1.0]) as buf:
        raise KeyError("boom")
    self.assertTrue(buf.released)
    self.assertEqual(self.ctx.live_buffers, 0)

  def test_closed_context(self):
    self.ctx.close()
    with self.assertRaises(DeviceUnavailable):
      DeviceBuffer.upload(self.ctx, [1.0])

if __name__ == '__main__':
  unittest.main()
