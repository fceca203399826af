from setuptools import setup, find_packages

setup(
    name="kode_agent",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pyyaml",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    author="Uday Kanth",
    description="Fuzzy edit reconciliation and context-diff patching for coding agents.",
)
