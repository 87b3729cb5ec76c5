"""Setup configuration for the Market Pulse package."""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

setup(
    name="market-pulse",
    version="0.1.0",
    author="Market Pulse Contributors",
    description="Live BTC/gold market dashboard with funding rates and AI commentary",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.5",
        "httpx>=0.27",
        "fastapi>=0.110",
        "slowapi>=0.1.9",
        "uvicorn>=0.29",
        "tzdata",
    ],
    extras_require={
        "dev": [
            "pytest>=8.3.3",
            "pytest-cov>=5.0.0",
            "mypy>=1.11.2",
            "black>=24.8.0",
            "ruff>=0.6.9",
        ],
        "test": [
            "pytest>=8.3.3",
            "pytest-cov>=5.0.0",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Office/Business :: Financial :: Investment",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
    ],
    entry_points={
        "console_scripts": [
            "market-pulse=market_pulse.cli.main:main",
        ],
    },
)
