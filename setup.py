#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
"""The setup.py file."""

import os
import sys

from setuptools import find_packages, setup
from setuptools.command.install import install

with open("src/dyson_tx/version.py") as fh:
    for line in fh:
        if line.strip().startswith("__version__"):
            VERSION = eval(line.split("=")[-1])
            break

with open("README.md", "r") as fh:
    LONG_DESCRIPTION = fh.read()

with open("requirements.txt") as fh:
    REQUIREMENTS = [val.strip() for val in fh if val.strip()]

TEST_REQUIREMENTS = ["pytest>=7.4", "pytest-asyncio>=0.23", "PyYAML>=6.0"]


class VerifyVersionCommand(install):
    """Custom command to verify that the git tag matches our VERSION."""

    def run(self):
        tag = os.getenv("GITHUB_REF_NAME")
        if tag != VERSION:
            info = f"Git tag: {tag} does not match the version of this pkg: {VERSION}"
            sys.exit(info)


setup(
    name="dyson-link",
    description="A client for Dyson Link devices (JSON over MQTT).",
    keywords=["dyson", "dyson link", "mqtt", "fan", "purifier", "heater"],
    install_requires=REQUIREMENTS,
    extras_require={"test": TEST_REQUIREMENTS},
    long_description=LONG_DESCRIPTION,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages("src", exclude=["tests", "docs"]),
    entry_points={"console_scripts": ["dyson-client = dyson_cli.client:main"]},
    version=VERSION,
    license="MIT",
    python_requires=">=3.11",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3.11",
        "Topic :: Home Automation",
    ],
    cmdclass={
        "verify": VerifyVersionCommand,
    },
)
