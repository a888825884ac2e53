# setup.py
from setuptools import setup, find_packages

setup(
    name="inventorylock",
    version="0.1.0",
    description="Optimistic concurrency control for shared product records",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "typer>=0.9.0",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "rich>=10.0.0",
        "SQLAlchemy>=2.0",
        "tomli>=2.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "hypothesis>=6.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "invlock=inventorylock.main:app",
        ],
    },
)
