# -*- coding: utf-8 -*-
import setuptools
import pathlib
import site
import sys

# odd bug with develop (editable) installs, see: https://github.com/pypa/pip/issues/7953
site.ENABLE_USER_SITE = "--user" in sys.argv[1:]

required = [
    "numpy",
    "mashumaro[msgpack]",
    "loguru",
    "rich>=13.0.0",
    "click>=8.0.0",
]

test_required = [
    "pytest",
    "pytest_asyncio>=0.24.0",
]

here = pathlib.Path(__file__).parent.resolve()

long_description = (here / "README.md").read_text(encoding="utf-8")

# Read version
version = {}
with open(here / "src/boardscope/_version.py", "r") as f:
    exec(f.read(), version)

if __name__ == "__main__":
    setuptools.setup(
        name="boardscope",
        version=version["__version__"],
        description="Waveform capture and readings from networked bench instruments (SCPI over TCP).",
        long_description=long_description,
        long_description_content_type="text/markdown",
        keywords=[
            "SCPI",
            "oscilloscope",
            "multimeter",
            "instrument control",
        ],
        classifiers=[
            "License :: OSI Approved :: MIT License",
            "Development Status :: 2 - Pre-Alpha",
        ],
        license="MIT",
        package_dir={"": "src"},
        packages=setuptools.find_packages(
            where="src",
            exclude=["*.test", "*.test.*", "test.*", "test", "test_*"],
        ),
        entry_points={
            "console_scripts": [
                "boardscope=boardscope.cli:cli",
            ],
        },
        install_requires=required,
        extras_require={"test": test_required},
        python_requires=">= 3.11",
        package_data={"": ["*.md"], "boardscope": ["instconfig/instruments/*.ini"]},
    )
# https://setuptools.readthedocs.io/en/latest/userguide/datafiles.html
