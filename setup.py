from setuptools import setup, find_packages

setup(
    name="timeline_core",
    version="0.1.0",
    description="Event clustering and manual override utilities for photo timelines",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pydantic>=2.5",
        "pydantic-settings>=2.0",
        "fastapi>=0.100",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "httpx>=0.24",
        ],
    },
    python_requires=">=3.8",
)
