#!/usr/bin/env python

"""
    Cascader
    ========

    Cascader inlines CSS in HTML documents for email clients.

"""

import re
import sys
from pathlib import Path

from setuptools import find_packages, setup

if sys.version_info.major < 3:
    raise RuntimeError('Cascader does not support Python 2.x.')

ROOT = Path(__file__).parent
VERSION = re.search(
    r"^VERSION = __version__ = '([^']+)'$",
    (ROOT / 'cascader' / '__init__.py').read_text(encoding='utf-8'),
    re.MULTILINE).group(1)

setup(
    name='cascader',
    version=VERSION,
    description='Inline CSS in HTML documents for email clients',
    long_description=__doc__,
    license='BSD-3-Clause',
    python_requires='>=3.9',
    packages=find_packages(include=['cascader', 'cascader.*']),
    install_requires=[
        'tinycss2>=1.4.0',
        'cssselect2>=0.8.0',
        'html5lib>=1.1',
    ],
    extras_require={
        'test': ['pytest', 'ruff'],
    },
    entry_points={
        'console_scripts': ['cascader = cascader.__main__:main'],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Topic :: Communications :: Email',
        'Topic :: Text Processing :: Markup :: HTML',
    ],
)
