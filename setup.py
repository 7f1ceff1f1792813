from pathlib import Path

from setuptools import find_packages, setup

ROOT = Path(__file__).parent


def read_version() -> str:
    for line in (ROOT / "tokenpulse" / "__init__.py").read_text().splitlines():
        if line.startswith("__version__"):
            return line.split("=", 1)[1].strip().strip("\"'")
    raise RuntimeError("unable to find __version__")


setup(
    name="tokenpulse",
    version=read_version(),
    description="Multi-source memecoin token aggregation for launchpads and DEXes",
    packages=find_packages(include=["tokenpulse", "tokenpulse.*"]),
    python_requires=">=3.11",
    install_requires=[
        "aiohttp>=3.9",
        "orjson>=3.9",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "cachetools>=5.3",
        "Flask>=3.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "tokenpulse=tokenpulse.cli:main",
        ],
    },
)
