"""Setup configuration for Catena framework."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="catena-chains",
    version="0.1.0",
    author="Catena Team",
    description="Compose language models, retrievers and prompts into observable chains",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0",
        "openai>=1.0.0",
        "tiktoken>=0.4.0",
        "tenacity>=8.0",
    ],
    extras_require={
        "dev": ["pytest>=6.0", "pytest-asyncio>=0.21.0", "black", "flake8", "mypy"],
    },
)
