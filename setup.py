"""Setup configuration for the cdp-driver package.

- Package as "cdp-driver" for pip installation
- Support development mode (pip install -e .)
- Support production installation (pip install .)
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text() if readme_path.exists() else ""


def read_requirements(name):
    path = Path(__file__).parent / name
    if not path.exists():
        return []
    return [
        line.strip()
        for line in path.read_text().splitlines()
        if line.strip() and not line.startswith("#")
    ]


setup(
    name="cdp-driver",
    version="0.1.0",
    description="Synchronous Chrome DevTools Protocol driver for page navigation, evaluation and screenshots",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MIT",

    # Package discovery
    packages=find_packages(include=["cdp_driver", "cdp_driver.*"]),

    # Dependencies
    install_requires=read_requirements("requirements.txt"),
    extras_require={
        "dev": read_requirements("requirements-dev.txt"),
        "test": read_requirements("requirements-dev.txt"),
    },

    # CLI entry point
    entry_points={
        "console_scripts": [
            "cdp-driver=cdp_driver.cli.main:main",
        ],
    },

    python_requires=">=3.10",

    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Software Development :: Testing",
        "Topic :: Software Development :: Debuggers",
        "Topic :: Internet :: WWW/HTTP :: Browsers",
    ],

    keywords="chrome devtools cdp browser automation navigation screenshot",
)
