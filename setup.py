from setuptools import setup, find_packages


setup(
    name="flatarc",
    version="0.1",
    packages=find_packages(include=["flatarc", "flatarc.*"]),
    description="Pack a folder's files into a single flat container file, unpack it, or check it against the folder.",
    author="vercingetorx",
    python_requires=">=3.8",
    install_requires=[],
    entry_points={
        "console_scripts": [
            "flatarc=flatarc.cli:main",
        ]
    },
)
