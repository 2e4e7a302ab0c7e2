"""
Setup configuration for advertly package.
"""

from setuptools import setup, find_packages

setup(
    name="advertly",
    version="0.1.0",
    description="Marketing strategy generation pipeline with competitor ads research",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn>=0.27",
        "slowapi>=0.1.9",
        "limits>=3.6",
        "pydantic>=2.5",
        "pydantic-graph>=0.1.0,<1.0",
        "tenacity>=8.2",
        "httpx>=0.26",
        "openai>=1.12",
        "python-dotenv>=1.0",
        "click>=8.1",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "advertly=advertly.cli.main:cli",
        ],
    },
)
