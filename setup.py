from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

requirements = [
    "boto3>=1.28.0",
    "botocore>=1.31.0",
    "click>=8.1.0",
    "tabulate>=0.9.0",
    "colorama>=0.4.0",
    "numpy>=1.24.0",
]

test_requirements = [
    "pytest>=7.0.0",
    "pytest-asyncio>=0.21.0",
]

setup(
    name="lambda-memory-tuner",
    version="1.0.0",
    author="Lambda Memory Tuner Contributors",
    author_email="",
    description="Find the AWS Lambda memory size that balances cost and speed",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: System :: Systems Administration",
    ],
    python_requires=">=3.8",
    install_requires=requirements,
    extras_require={
        "test": test_requirements,
    },
    entry_points={
        "console_scripts": [
            "lambda-memory-tuner=lambda_memory_tuner.cli:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
