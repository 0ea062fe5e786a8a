from setuptools import setup, find_packages


setup(
    name="llm-globber",
    version="0.1",
    packages=find_packages(exclude=["scripts"]),
    description="Collect source files into a single signed text archive for LLMs, and extract them again.",
    author="vercingetorx",
    install_requires=[
        "pycryptodomex>=3.23.0",
    ],
    entry_points={
        "console_scripts": [
            "llm-globber=llm_globber.cli:main",
        ]
    },
)
