from setuptools import setup, find_packages

setup(
    name="limitree",
    version="0.1.0",
    description="A hierarchical rate limiter: token-bucket bandwidths evaluated over a tree of named resources",
    author="adamfilli",
    packages=find_packages(include=["limitree", "limitree.*"]),
    install_requires=[
        "matplotlib",
        "pandas",
        "redis",
    ],
    extras_require={
        "test": ["pytest"],
    },
    include_package_data=True,
    python_requires=">=3.13",
)
