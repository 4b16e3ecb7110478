"""
Setup script for eloss_mc package.

Installation:
    pip install -e .
"""

from setuptools import setup, find_packages

setup(
    name="eloss_mc",
    version="0.1.0",
    description="Charged-particle energy loss cross sections and propagation utilities",
    packages=find_packages(include=["eloss_mc", "eloss_mc.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24",
        "scipy>=1.10",
        "numba>=0.58",
        "h5py>=3.8",
        "pyyaml>=6.0",
        "tqdm>=4.65",
    ],
    extras_require={
        "dev": ["pytest>=7.3", "black>=23.0", "mypy>=1.3"],
    },
)
