#!/usr/bin/env python3

# python setup.py sdist --format=zip,gztar

import os
import sys

from setuptools import setup

if sys.version_info[:3] < (3, 10, 0):
    sys.exit("Error: BGWallet requires Python version >= 3.10.0...")

with open('contrib/requirements/requirements.txt') as f:
    requirements = f.read().splitlines()

with open('contrib/requirements/requirements-dev.txt') as f:
    requirements_dev = f.read().splitlines()

version = {}
with open(os.path.join('bgwallet', 'version.py')) as f:
    exec(f.read(), version)

setup(
    name="BGWallet",
    version=version['PACKAGE_VERSION'],
    python_requires='>=3.10',
    install_requires=requirements,
    extras_require={
        'test': requirements_dev,
    },
    packages=[
        'bgwallet',
        'bgwallet.migrations',
        'bgwallet.util',
    ],
    entry_points={
        'console_scripts': [
            'bgwallet=bgwallet.main_entrypoint:main',
        ],
    },
    description="Wallet background process",
    author="The BGWallet Developers",
    license="MIT Licence",
    long_description="""Wallet background process: versioned state persistence, and the
multiplexing of user interface and remote caller channels onto one wallet controller.""",
)
