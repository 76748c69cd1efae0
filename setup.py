#!/usr/bin/env python
# -*- coding: utf-8 -*-

from setuptools import find_packages, setup

setup(
    name="hullmorph",
    version="0.1.0",
    description="Map a shell hull onto a beam skeleton and morph it",
    author="",
    author_email="",
    url="",
    packages=find_packages(),
    include_package_data=True,
    install_requires=[
        # Core dependencies (association, segmentation, projection)
        "numpy",
        "networkx",
        "tqdm>=4.65.0",
        # Visualization
        "matplotlib>=3.7.0",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-cov",
            "codecov",
        ],
    },
    entry_points={
        "console_scripts": [
            "hullmorph=hullmorph.cli:main",
        ],
    },
    python_requires=">=3.10",
)
