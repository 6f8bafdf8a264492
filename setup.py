# setup.py
from setuptools import setup, find_packages

setup(
    name="adstxt_manager",
    version="0.1.0",
    description="Кэш ads.txt / sellers.json и оптимизатор ads.txt AdsTxtManager",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"adstxt_manager": ["templates/*.j2"]},
    install_requires=[
        "aiohttp>=3.9",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "click>=8.1",
        "Jinja2>=3.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "adstxt-manager=adstxt_manager.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
