import os.path
import re

from setuptools import find_packages, setup

try:
    # Import all script providers so that ENTRYPOINTS gets populated.
    from nssmlib.scripts import service  # noqa: F401
    from nssmlib.scripts.utils import ENTRYPOINTS
except ImportError:
    # Avoid chicken-and-egg dependency requirements during initial installation.
    # This means you need to re-run setup in order to gain script entrypoints.
    ENTRYPOINTS = []


HERE = os.path.abspath(os.path.dirname(__file__))

README = os.path.join(HERE, "README.rst")


def version():
    with open(os.path.join(HERE, "nssmlib", "__init__.py")) as init:
        return re.search(r'^__version__ = "(.+)"$', init.read(), re.M).group(1)


setup(name="nssmlib",
      version=version(),
      description="Control layer over NSSM for installing and managing Windows services.",
      long_description=open(README).read(),
      long_description_content_type="text/x-rst",
      platforms=["Windows"],
      python_requires=">=3.8",
      install_requires=["docopt", "pywin32; sys_platform == 'win32'"],
      extras_require={"test": ["pytest"]},
      packages=find_packages(exclude=["tests", "tests.*"]),
      package_data={"nssmlib": ["bin/*.exe"]},
      entry_points={"console_scripts": ENTRYPOINTS})
