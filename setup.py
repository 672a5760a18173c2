"""
Setup script for the dish nutrition estimator.
"""
from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text() if readme_path.exists() else ""

setup(
    name="dish-nutrition-estimator",
    version="0.1.0",
    description="Best-effort per-serving nutrition estimates for named dishes with assumption tracking",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["nutrition_estimator", "nutrition_estimator.*"]),
    package_data={
        "nutrition_estimator": ["configs/*.yml", "configs/*.json", "configs/*.csv"],
    },
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0",
        "pyyaml>=6.0",
        "python-dotenv>=1.0.0",
        "pandas>=2.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "nutrition-estimate=nutrition_estimator.cli:main",
        ]
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering",
    ],
)
