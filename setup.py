"""Setup script for the tunnelhub package."""

from setuptools import setup, find_packages

requires = ["blinker>=1.4", "trio>=0.22.0", "trio_util>=0.7.0"]

__version__ = None
exec(open("src/tunnelhub/version.py").read())

setup(
    name="tunnelhub",
    version=__version__,
    packages=find_packages("src"),
    package_dir={"": "src"},
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=requires,
    extras_require={"test": ["pytest>=7.0", "pytest-trio>=0.8.0"]},
    test_suite="test",
)
