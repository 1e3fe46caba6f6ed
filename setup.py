from setuptools import setup, find_packages

setup(
    name="siq_converter",
    version="0.1.0",
    packages=find_packages(exclude=["tests"]),
    python_requires=">=3.8",
    install_requires=["requests", "defusedxml"],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "siq-convert=siq_converter.cli:main",
        ],
    },
)
