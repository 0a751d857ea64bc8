from kernbench.gpu.device import Device
from kernbench.gpu.cl.device_cl import OpenCLDevice, CL_AVAILABLE
from kernbench.gpu.cpu.device_cpu import CPUDevice, EMULATED_MODULE
from kernbench.gpu.context import DeviceContext, SUPPORTED_DEVICES, create_device

__all__ = ['Device', 'OpenCLDevice', 'CPUDevice', 'CL_AVAILABLE', 'EMULATED_MODULE',
           'DeviceContext', 'SUPPORTED_DEVICES', 'create_device']
