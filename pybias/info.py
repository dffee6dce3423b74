import os.path as op

VERSION = '0.1.0'

readme_file = op.join(op.dirname(op.dirname(op.abspath(__file__))), 'README.md')
if op.isfile(readme_file):
    with open(readme_file, encoding='utf-8') as f:
        longdesc = f.read()
else:
    longdesc = ''

AUTHOR = 'PyBIAS developers'
COPYRIGHT = 'Copyright 2024--now, PyBIAS developers'
LICENSE = 'MIT'
STATUS = 'Prototype'
PACKAGENAME = 'PyBIAS'
DESCRIPTION = ('PyBIAS: publication-bias correction estimators and a '
               'replication-benchmark harness')
LONGDESC = longdesc
LONGDESCCONTTYPE = "text/markdown"

REQUIRES = [
    'numpy>=1.17',
    'scipy>=1.9',
    'pandas',
    'wrapt',
    'joblib',
]

TESTS_REQUIRES = [
    'coverage',
    'flake8',
    'pytest',
    'pytest-cov'
]

EXTRA_REQUIRES = {
    'tests': TESTS_REQUIRES,
}

# Enable a handle to install all extra dependencies at once
EXTRA_REQUIRES['all'] = list(set([
    v for deps in EXTRA_REQUIRES.values() for v in deps]))

ENTRY_POINTS = {}

# Package classifiers
CLASSIFIERS = [
    'Development Status :: 3 - Alpha',
    'Intended Audience :: Science/Research',
    'License :: OSI Approved :: MIT License',
    'Operating System :: OS Independent',
    'Programming Language :: Python :: 3',
    'Topic :: Scientific/Engineering'
]
