import os

from setuptools import find_packages, setup

with open("README.md", encoding="utf-8") as fh:
    long_description = fh.read()


def read_requirements(path):
    if not os.path.exists(path):
        return []
    with open(path, encoding="utf-8") as fh:
        return [
            line.strip()
            for line in fh
            if line.strip() and not line.startswith("#") and not line.startswith("-r")
        ]


requirements = read_requirements("requirements.txt") or ["rich>=13.0.0"]
dev_requirements = read_requirements("requirements-dev.txt") or ["pytest>=7.0.0"]

setup(
    name="pkg-impact",
    version="0.1.0",
    author="pkg-impact contributors",
    description="Transitive removal impact analysis for installed RPM packages",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Systems Administration",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={"dev": dev_requirements},
    entry_points={
        "console_scripts": [
            "pkg-impact=pkgimpact.cli:main",
        ],
    },
)
