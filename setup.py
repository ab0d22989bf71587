"""Setup configuration for contract-suite."""

from setuptools import setup, find_packages

setup(
    name="contract-suite",
    version="0.1.0",
    description="Runs suites of test contracts against a remote execution environment",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "requests>=2.31.0",
        "pyyaml>=6.0",
        "click>=8.1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
        ],
    },
    entry_points={
        "console_scripts": [
            "contract-suite=contract_suite.cli:main",
        ],
    },
)
