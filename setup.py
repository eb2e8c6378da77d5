from setuptools import setup, find_packages

setup(
    name="ensure_ui",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "playwright==1.52.0",
        "pydantic",
        "openai",
        "httpx",
        "python-dotenv",
        "pyyaml",
        "html2text",
        "jinja2"
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "ensure-ui=ensure_ui.cli:main",
        ],
    },
    python_requires='>=3.10',
)
