#!/usr/bin/env python
"""
Marketplace User Activity Service Setup
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="marketplace-activity",
    version="1.0.0",
    description="User activity aggregation service for an online grocery marketplace",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["marketplace", "marketplace.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Framework :: FastAPI",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
        "Topic :: Database",
    ],
    python_requires=">=3.11",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-asyncio>=0.23.0",
            "aiosqlite>=0.19.0",
            "httpx>=0.25.0",
            "black>=23.0.0",
            "ruff>=0.1.0",
            "mypy>=1.5.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "marketplace-seed=marketplace.database.seed:cli",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    keywords=[
        "marketplace",
        "grocery",
        "fastapi",
        "sqlalchemy",
        "postgresql",
    ],
)
