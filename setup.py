#!/usr/bin/env python
"""Setup."""


from setuptools import find_packages, setup  # type: ignore[import]

setup(
    name="qatch",
    version="0.1.0",
    description="Identify slow (un-indexed) MongoDB queries in CI",
    python_requires=">=3.8",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"qatch": ["py.typed"]},
    install_requires=[
        "coloredlogs",
        "motor",
        "pymongo",
        "tornado",
        "wipac-telemetry",
    ],
    extras_require={
        "tests": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={"console_scripts": ["qatch=qatch.__main__:main_sync"]},
)
