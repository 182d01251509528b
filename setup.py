from __future__ import annotations

from pathlib import Path

from setuptools import find_packages, setup  # type: ignore


ROOT = Path(__file__).resolve().parent


def _read_version() -> str:
    init = ROOT / "src" / "camtimeline" / "__init__.py"
    for line in init.read_text(encoding="utf-8").splitlines():
        if line.startswith("__version__"):
            return line.split("=", 1)[1].strip().strip("\"'")
    raise RuntimeError("Unable to find __version__ in camtimeline/__init__.py")


setup(
    name="camtimeline",
    version=_read_version(),
    description="Multi-client camera path timelines: keyframes, spline playback and an HTTP registry",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "numpy>=1.24",
        "fastapi>=0.110",
        "uvicorn>=0.23",
        "httpx>=0.25",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": [
            "camtimeline=camtimeline.__main__:main",
        ],
    },
)
