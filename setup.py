# setup.py
from setuptools import setup, find_packages

setup(
    name="expense-calculator",
    version="0.1.0",
    description="Personal expense tracker with a web dashboard, charts and a CLI",
    author="Your Name",
    author_email="you@example.com",
    url="https://github.com/yourusername/expense-calculator",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"webapp": ["templates/*.html"]},
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "click>=8.0",
        "pyyaml>=5.3",
        "pandas>=1.1",
        "openpyxl>=3.0",
        "xlsxwriter>=3.0",
        "python-dotenv>=0.19",
        "fastapi>=0.110",
        "jinja2>=3.0",
        "python-multipart>=0.0.6",
        "itsdangerous>=2.0",
        "uvicorn>=0.20",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "httpx>=0.24",
        ],
    },
    entry_points={
        "console_scripts": [
            "expense-calc=expense_calculator.cli:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
