#!/usr/bin/env python
"""PyBIAS setup script."""
import importlib.util
import os.path as op

from setuptools import find_packages, setup


def _load_info():
    spec = importlib.util.spec_from_file_location(
        'info', op.join(op.dirname(op.abspath(__file__)), 'pybias', 'info.py'))
    info = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(info)
    return info


if __name__ == "__main__":
    info = _load_info()
    setup(
        name=info.PACKAGENAME,
        version=info.VERSION,
        description=info.DESCRIPTION,
        long_description=info.LONGDESC,
        long_description_content_type=info.LONGDESCCONTTYPE,
        author=info.AUTHOR,
        license=info.LICENSE,
        classifiers=info.CLASSIFIERS,
        packages=find_packages(include=['pybias', 'pybias.*']),
        install_requires=info.REQUIRES,
        extras_require=info.EXTRA_REQUIRES,
        entry_points=info.ENTRY_POINTS,
        python_requires='>=3.8',
        zip_safe=False,
    )
