#!/usr/bin/env python3
"""
Setup script for braid-agents
"""

from setuptools import setup, find_packages
import os

# Read the README file
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Get version from environment or default
version = os.getenv("VERSION", "0.1.0")

setup(
    name="braid-agents",
    version=version,
    author="Braid Contributors",
    author_email="contributors@example.com",
    description="Multi-agent invocation coordinator: agent trees, plugins, events and session state",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.4.0,<3.0.0",
        "typing-extensions>=4.13.2",
    ],
    extras_require={
        "database": [
            "sqlalchemy>=2.0.0,<3.0.0",
        ],
        "dev": [
            "pytest>=8.0.0",
            "pytest-asyncio>=1.0.0",
            "pytest-cov>=4.0.0",
            "sqlalchemy>=2.0.0,<3.0.0",
        ],
    },
    include_package_data=True,
    keywords=[
        "agents",
        "multi-agent",
        "llm",
        "orchestration",
        "plugins",
        "sessions",
    ],
    zip_safe=False,
)
