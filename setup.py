"""Install the bthome package."""

from setuptools import setup

setup(
    name="bthome",
    version="0.1.0",
    description="BTHome v2 BLE telemetry decoder",
    package_dir={"": "python"},
    packages=["bthome"],
    python_requires=">=3.9",
    install_requires=["numpy"],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["bthome = bthome.cli:main"]},
)
