# setup.py
from setuptools import setup, find_packages

setup(
    name="saferocks",
    version="0.1.0",
    description="Ownership-checked Python bindings for the RocksDB C API",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.8",
    install_requires=["cffi>=1.15"],
    extras_require={"test": ["pytest>=7"]},
    entry_points={"console_scripts": ["saferocks=saferocks.cli:main"]},
)
