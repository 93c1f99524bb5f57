# setup.py
from setuptools import setup, find_packages

setup(
    name="assetcleaner",
    version="1.5.0",
    description="Incremental asset reference indexer and unused-asset report",
    packages=find_packages("src"),
    package_dir={"": "src"},
    python_requires=">=3.8",
    install_requires=[],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        'console_scripts': [
            'assetcleaner=assetcleaner.main:main',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
