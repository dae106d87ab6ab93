#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
    setup.py
    ~~~~~~~~
    Circulation, the borrowing lifecycle and inventory engine for libraries

    :copyright: (c) 2025 by Authors.
    :license: see LICENSE for more details.
"""

import os
import re
import codecs
from setuptools import setup

here = os.path.abspath(os.path.dirname(__file__))


def read(*parts):
    return codecs.open(os.path.join(here, *parts), 'r').read()


def find_version(*file_paths):
    version_file = read(*file_paths)
    version_match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]",
                              version_file, re.M)
    if version_match:
        return version_match.group(1)
    raise RuntimeError("Unable to find version string.")

setup(
    name='circulation',
    version=find_version("circulation", "__init__.py"),
    description='Circulation, request approval, loans and inventory for libraries',
    long_description=read('README.md'),
    long_description_content_type='text/markdown',
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Web Environment",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP",
    ],
    author='Authors',
    packages=[
        'circulation',
        'circulation.configs',
        'circulation.core',
        'circulation.routes',
        'circulation.schemas',
        ],
    platforms='any',
    license='LICENSE',
    python_requires='>=3.8',
    install_requires=[
        'sqlalchemy>=2.0',
        'fastapi',
        'pydantic>=2',
        'uvicorn',
        ],
    extras_require={
        'test': [
            'pytest',
            'httpx',
            ],
        },
    include_package_data=True
    )
