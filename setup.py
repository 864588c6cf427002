"""
Setup script for report-pdf-service project.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_packages

setup(
    name="report-pdf-service",
    version="0.1.0",
    packages=find_packages(include=["report_pdf", "report_pdf.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn>=0.29",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "playwright>=1.40",
        "markdown-it-py>=3.0",
        "linkify-it-py>=2.0",
        "httpx>=0.27",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "report-pdf-service=report_pdf.main:main",
            "report-pdf-download=report_pdf.client:main",
        ],
    },
)
