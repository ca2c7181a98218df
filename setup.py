from setuptools import setup, find_packages

setup(
    name="smartform",
    version="0.1.0",
    description="Schema-driven form engine",
    author="Smartform Team",
    packages=find_packages(include=["smartform", "smartform.*"]),
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        "pydantic>=2.0",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
