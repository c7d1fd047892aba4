from setuptools import setup, find_packages

setup(
    name="erpforge",
    version="0.1.0",
    description="Interactive ERP simulation dashboard core: tab-scoped parameters, coalesced recomputes and cumulative results",
    author="ERPForge Contributors",
    license="MIT",
    packages=find_packages(include=["erpforge", "erpforge.*"]),
    python_requires=">=3.8",
    install_requires=[
        "torch>=1.12.0",
        "numpy>=1.21.0",
        "scipy>=1.7.0",
        "pandas>=1.3.0",
        "PyQt5>=5.15.0",
        "PyYAML>=6.0",
        "structlog>=21.1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=3.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "erpforge=erpforge.cli:main",
        ],
    },
)
