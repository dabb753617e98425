"""Setup file for development installation."""

from setuptools import setup, find_namespace_packages

setup(
    name="sanyai-chat",
    version="0.1.0",
    packages=find_namespace_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.100",
        "pydantic>=2.0",
        "structlog",
        "prometheus-client",
        "opentelemetry-instrumentation-fastapi",
        "openai>=1.0",
        "tiktoken",
        "httpx",
        "sqlmodel",
        "python-dotenv",
        "uvicorn",
    ],
    extras_require={
        "postgres": ["psycopg2-binary"],
        "test": ["pytest", "pytest-asyncio", "httpx"],
    },
    entry_points={
        "console_scripts": ["sanyai-chat=sanyai_chat.__main__:main"],
    },
)
