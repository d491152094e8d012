import os.path

from setuptools import find_packages, setup

with open(os.path.join(os.path.dirname(__file__), 'README.md')) as f:
    LONG_DESCRIPTION = f.read()
    DESCRIPTION = LONG_DESCRIPTION.splitlines()[0].lstrip('#').strip()

setup(
    name='edgeswift',
    version='0.1.0',

    description=DESCRIPTION,
    long_description=LONG_DESCRIPTION,
    long_description_content_type='text/markdown',
    keywords=['kubernetes', 'controller', 'edgefs', 'swift', 'k8s'],
    license='Apache-2.0',
    classifiers = [
        'Intended Audience :: Developers',
        'Intended Audience :: System Administrators',
        'Operating System :: OS Independent',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Programming Language :: Python :: 3.13',
        'Programming Language :: Python :: 3 :: Only',
        'Programming Language :: Python :: Implementation :: CPython',
        'Topic :: System :: Distributed Computing',
    ],

    zip_safe=True,
    packages=find_packages(include=['edgeswift', 'edgeswift.*']),
    include_package_data=True,
    entry_points={
        'console_scripts': [
            'edgeswift = edgeswift.cli:main',
        ],
    },

    python_requires='>=3.10',
    install_requires=[
        'typing_extensions',    # 0.20 MB
        'python-json-logger>=3.1.0',   # 0.05 MB
        'click',                # 0.60 MB
        'aiohttp>=3.9.0',       # 7.80 MB
        'pyyaml',               # 0.90 MB
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio>=0.23',
            'pytest-mock',
            'aresponses',
        ],
    },
    package_data={"edgeswift": ["py.typed"]},
)
