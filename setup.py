# setup.py
from setuptools import setup, find_packages

setup(
    name="schoolyard",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "python-dateutil",
        "matplotlib",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": [
            "schoolyard=schoolyard.main:main",
        ],
    },
)
