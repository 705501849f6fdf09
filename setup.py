from setuptools import setup, find_packages  # ignore: type

setup(
    name="index_lifecycle",
    version="1.0.0",
    description="Manage generations of search engine indices: create, reindex and swap aliases",
    packages=find_packages(exclude=("tests", "tests.*")),
    install_requires=["requests", "boto3", "pyyaml", "Click", "cerberus", "pydantic"],
    extras_require={
        "test": ["pytest", "requests-mock", "pytest-mock", "moto"],
    },
    entry_points={
        "console_scripts": [
            "indexctl = index_lifecycle.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Database",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "License :: OSI Approved :: Apache Software License",
    ],
)
