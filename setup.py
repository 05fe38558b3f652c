#!/usr/bin/env python3
"""
Setup script for gotestcolor
Colourful go test output with links to failing tests
"""

from pathlib import Path
from setuptools import setup, find_packages

# Read version from package
version = "0.1.0"

install_requires = [
    "pexpect>=4.8.0",
    "psutil>=5.9.0",  # For signalling the go test process tree
    "pyjson5>=1.6.9",
    "fastjsonschema>=2.20",
    "colorama>=0.4.6",
    "watchdog>=2.1.0",  # For loop mode
]

extras_require = {
    "dev": [
        "pytest>=7.0.0",
        "black>=22.0.0",
        "mypy>=0.950",
    ],
}

setup(
    name="gotestcolor",
    version=version,
    description="Run go test and print its output in colour, with links to failing tests",
    long_description=open("README.md").read() if Path("README.md").exists() else "",
    long_description_content_type="text/markdown",
    python_requires=">=3.8",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "gotest=gotestcolor.cli:main",
            "gotestcolor=gotestcolor.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Testing",
        "Operating System :: POSIX",
    ],
)
