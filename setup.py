#!/usr/bin/env python3
"""
Ping Phantom v1.0.0 - Setup Configuration
=========================================

ICMP echo (ping) utility and library.

Installation:
    pip install .

    OR (development mode):
    pip install -e ".[dev]"

    Creates 'pping' console script globally.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read long description from README
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

# Core dependencies
REQUIRED_PACKAGES = [
    "jsonschema>=4.0.0",    # Configuration file validation
    "colorama>=0.4.4",      # Cross-platform colored output
]

# Optional development dependencies
EXTRAS_REQUIRE = {
    "dev": [
        "pytest>=7.0.0",    # Testing
        "pytest-cov>=4.0.0", # Coverage reporting
    ],
}

setup(
    # Package Information
    name="ping-phantom",
    version="1.0.0",
    author="Ping Phantom Team",
    description="ICMP echo utility with per-reply timing and loss statistics",
    long_description=long_description,
    long_description_content_type="text/markdown",

    # Classification
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: System Administrators",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3",
        "Topic :: Internet",
        "Topic :: System :: Networking",
        "Topic :: System :: Networking :: Monitoring",
    ],

    # Keywords for searching
    keywords=[
        "network",
        "ping",
        "icmp",
        "latency",
        "monitoring",
    ],

    # Package Configuration
    packages=find_packages(exclude=["tests", "tests.*"]),

    # Python Version Requirement
    python_requires=">=3.8",

    # Dependencies
    install_requires=REQUIRED_PACKAGES,
    extras_require=EXTRAS_REQUIRE,

    # Entry Points (Console Scripts)
    entry_points={
        "console_scripts": [
            "pping=ping_phantom.cli:main",
        ],
    },

    zip_safe=False,
)
