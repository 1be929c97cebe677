# Copyright (c) mrmilbe

"""Setup configuration for pcm_wave package."""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

setup(
    name="pcm_wave",
    version="1.0.0",
    author="mrmilbe",
    description="Cancelable per-pixel waveform peak reduction with zoom/pan viewport mapping",
    long_description=long_description,
    long_description_content_type="text/markdown",

    # Main module and packages
    py_modules=["pcm_wave"],
    packages=find_packages(include=["pcm_waveform_core", "pcm_waveform_core.*"]),

    # Console script entry point
    entry_points={
        "console_scripts": [
            "pcm_wave=pcm_wave:main",
        ],
    },

    # Dependencies
    install_requires=[
        "numpy>=1.24.0",
        "Pillow>=10.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },

    python_requires=">=3.9",

    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Multimedia :: Sound/Audio :: Analysis",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
