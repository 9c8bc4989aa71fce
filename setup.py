from setuptools import find_packages, setup

setup(
    name="ado-rest-client",
    version="0.1.0",
    packages=find_packages("src"),
    package_dir={"": "src"},
    install_requires=[
        "pydantic>=2",
        "pyyaml",
        "azure-identity",
        "azure-core",
        "aiohttp>=3.9",
        "tenacity",
        "pyspnego",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    description="Azure DevOps REST client plumbing: transport, auth handlers, contract serializer and versioning",
    python_requires=">=3.10",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
)
