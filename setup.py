from setuptools import setup, find_packages


setup(
    name="arstream",
    version="0.1",
    packages=find_packages(include=["arstream", "arstream.*"]),
    description="Streaming reader and writer for Unix ar archives, the container of .deb packages.",
    python_requires=">=3.8",
    install_requires=[],
    entry_points={
        "console_scripts": [
            "arstream=arstream.cli:main",
        ]
    },
)
