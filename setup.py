#!/usr/bin/env python

from setuptools import find_packages, setup

setup(
    name='seqflow',
    version='0.1.0',
    description='Manifest-driven task graph engine for sequencing read QC and alignment',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    license='MIT',
    packages=find_packages(include=['seqflow', 'seqflow.*']),
    python_requires='>=3.10',
    install_requires=[
        'networkx>=2.8.3',
        'pandas',
        'slack_sdk',
        'coloredlogs',
        'click',
        'toml',
        'jinja2',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-xdist',
            'pytest-mock',
            'coverage',
        ],
    },
    package_data={
        'seqflow': ['defaults.toml', 'templates/*.j2'],
    },
    keywords='bioinformatics',
    classifiers=[
        'Environment :: Console',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: MIT License',
        'Natural Language :: English',
        'Operating System :: MacOS :: MacOS X',
        'Operating System :: POSIX',
        'Operating System :: Unix',
        'Programming Language :: Python',
        'Topic :: Scientific/Engineering',
        'Topic :: Scientific/Engineering :: Bio-Informatics',
    ],
    entry_points={
        'console_scripts': [
            'seqflow = seqflow.main:main',
        ],
    },
)
