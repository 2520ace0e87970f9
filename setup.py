"""
Setup configuration for the Raw Table Loader.
Use this for:
- Creating a Distributable Package
- Installing the raw_loader console script

If you're just setting up another development environment, consider using `pip install -e .[dev]` instead.

For Distributable Package:
- python -m build
    (Creates installable .whl files in dist/ folder)
"""

from setuptools import setup, find_packages
from pathlib import Path

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

# Separate main requirements from development requirements
main_requirements = []
dev_requirements = []

for req in requirements:
    if any(dev_pkg in req for dev_pkg in ["pytest", "black", "flake8", "mypy"]):
        dev_requirements.append(req)
    else:
        main_requirements.append(req)

setup(
    name="raw_loader",
    version="1.0.0",
    author="Raw Loader Team",
    description="Raw table lifecycle, batch staging and loading for relational warehouse destinations.",
    long_description=Path("README.md").read_text(encoding="utf-8"),
    long_description_content_type="text/markdown",
    packages=find_packages(include=["raw_loader", "raw_loader.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3.8",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Database",
    ],
    python_requires=">=3.8",
    install_requires=main_requirements,
    extras_require={
        "dev": dev_requirements,
    },
    entry_points={
        "console_scripts": [
            "raw_loader=raw_loader.cli:main",
        ],
    },
)
