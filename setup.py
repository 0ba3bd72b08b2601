from setuptools import setup, find_packages

setup(
    name="media-presence",
    version="0.1.0",
    description="Track every MPRIS media player on the session bus and show the one that is playing, with play/pause/next/previous control",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    python_requires=">=3.10",
    license="MIT",
    packages=find_packages(exclude=("tests", "tests.*")),
    package_data={"media_presence": ["py.typed"]},
    install_requires=[
        "colorama",
        "dbus-python",
        "PyGObject",
        "typer",
    ],
    extras_require={
        "dev": [
            "pytest",
            "black",
            "ruff",
            "mypy",
        ]
    },
    entry_points={
        "console_scripts": [
            "media-presence=media_presence.cli:main",
        ]
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio",
        "Topic :: Utilities",
    ],
    keywords="mpris dbus media player now-playing",
)
