#!/usr/bin/env python3
# this file specifies how the kernbench package is installed, including any necessary dependencies required to run

import os
from setuptools import setup

directory = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(directory, 'README.md'), encoding='utf-8') as f:
  long_description = f.read()

setup(name='kernbench',
      version='0.1.0',
      description='load precompiled vector kernels, run them on the gpu and benchmark them against the host',
      license='MIT',
      long_description=long_description,
      long_description_content_type='text/markdown',
      packages = ['kernbench', 'kernbench.gpu', 'kernbench.gpu.cl', 'kernbench.gpu.cpu'],
      package_data={'kernbench.gpu.cl': ['*.cl']},
      classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License"
      ],
      install_requires=['numpy', 'matplotlib'],
      extras_require={
        'gpu': ['pyopencl'],
        'testing': ['pytest', 'torch'],
      },
      python_requires='>=3.8',
      include_package_data=True)
