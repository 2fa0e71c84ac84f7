from setuptools import setup, find_namespace_packages

setup(
    name="notion_publisher",
    version="0.1.0",
    packages=find_namespace_packages(where="src"),
    package_dir={"": "src"},
    package_data={"notion_publisher.site": ["templates/*.html"]},
    install_requires=[
        "notion-client>=2.2.1",
        "python-dotenv>=1.0.0",
        "pydantic>=2.5.2",
        "requests>=2.31.0",
        "jinja2>=3.1.0",
        "GitPython>=3.1.40",
    ],
    extras_require={
        "test": ["pytest>=7.4.0"],
    },
    entry_points={
        "console_scripts": ["notion-publisher=notion_publisher.main:main"],
    },
    python_requires=">=3.9",
)
