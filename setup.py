from setuptools import setup, find_packages
import re

with open("stagedeploy/__init__.py") as fp:
    version = re.search(r'__version__ = "(.+)"', fp.read()).group(1)

setup(
    name="stagedeploy",
    version=version,
    description="Multi-stage release orchestrator for prebuilt Go services.",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    license="LGPL",
    install_requires=["paramiko", "PyYAML", "requests", "termcolor"],
    extras_require={"test": ["pytest"]},
    packages=find_packages(exclude=["docs", "test*"]),
    keywords=["deployment", "release"],
    python_requires=">=3.7",
    platforms="Posix; MacOS X",
    zip_safe=False,
    entry_points={"console_scripts": ["stagedeploy=stagedeploy.main:main"]},
    classifiers=[
        "Operating System :: POSIX",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
    ],
)
