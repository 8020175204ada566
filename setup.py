#!/usr/bin/env python3
"""
Setup configuration for Logga.

Log shipping agent: tails an access log from a saved checkpoint and
uploads rotated log archives to an S3-compatible object store.
"""
from pathlib import Path

from setuptools import find_packages, setup

readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

setup(
    name="logga",
    version="0.3.0",
    description="Log shipping agent: checkpointed tailing and archive upload to S3",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where=".", include=["logga", "logga.*"]),
    python_requires=">=3.8",
    install_requires=[
        "watchdog>=3.0.0",
        "boto3>=1.28.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-mock>=3.11.0",
        ],
        "dev": [
            "black>=23.0.0",
            "flake8>=6.0.0",
            "isort>=5.12.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "logga=logga.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX",
        "Topic :: System :: Logging",
    ],
    include_package_data=True,
)
