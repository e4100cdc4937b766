"""
Setup script for job-tracker project.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_packages

setup(
    name="job-tracker",
    version="1.0.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "python-multipart>=0.0.9",
        "uvicorn>=0.27",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "httpx>=0.25",
        ],
    },
)
