import re

from setuptools import find_packages, setup

version = re.search(r'^__version__\s*=\s*"(.*)"', open("cronregistrar/__init__.py").read(), re.M).group(1)

setup(
    name="cronregistrar",
    version=version,
    description="Namespaced registration of cron schedules and jobs with a scheduler runtime",
    packages=find_packages(include=["cronregistrar", "cronregistrar.*"]),
    install_requires=["prometheus-client", "arrow", "pyyaml", "dacite", "pyhumps"],
    extras_require={"tests": ["pytest"]},
    python_requires=">=3.8",
)
