"""
Setup configuration for the Camunda 8 on ECS Fargate CDK constructs.

This setup.py file defines the package structure, dependencies, and metadata
for the CDK Python constructs that deploy Zeebe and the Camunda 8 web
applications on AWS ECS Fargate.
"""

import os
from setuptools import setup, find_packages


def read_readme():
    """Read the README file for the long description."""
    readme_path = os.path.join(os.path.dirname(__file__), "README.md")
    if os.path.exists(readme_path):
        with open(readme_path, "r", encoding="utf-8") as f:
            return f.read()
    return "Camunda 8 on ECS Fargate CDK constructs"


def read_requirements():
    """Read requirements from requirements.txt file."""
    requirements_path = os.path.join(os.path.dirname(__file__), "requirements.txt")
    requirements = []

    if os.path.exists(requirements_path):
        with open(requirements_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#"):
                    requirements.append(line)

    return requirements


PACKAGE_NAME = "camunda-fargate-cdk"
VERSION = "1.0.0"
DESCRIPTION = "AWS CDK constructs for Camunda 8 and Zeebe on ECS Fargate"

CLASSIFIERS = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "License :: OSI Approved :: Apache Software License",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3.9",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Topic :: System :: Distributed Computing",
]

KEYWORDS = ["aws", "cdk", "ecs", "fargate", "camunda", "zeebe"]

setup(
    name=PACKAGE_NAME,
    version=VERSION,
    description=DESCRIPTION,
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["app"],
    install_requires=read_requirements()
    or [
        "aws-cdk-lib>=2.100.0,<3.0.0",
        "constructs>=10.0.0,<11.0.0",
        "cdk-nag>=2.27.0,<3.0.0",
    ],
    python_requires=">=3.9",
    classifiers=CLASSIFIERS,
    keywords=" ".join(KEYWORDS),
    entry_points={
        "console_scripts": [
            "camunda-fargate-synth=app:main",
        ],
    },
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
    },
    license="Apache-2.0",
    zip_safe=False,
)
