"""
ytarchive — setuptools build script.

Usage:
    # Development (editable — links to source):
    pip install -e .

    # Then:
    ytarchive https://www.youtube.com/watch?v=VIDEO_ID

Tests:
    python -m unittest discover tests
"""

from setuptools import setup

APP_NAME = "ytarchive"

setup(
    name=APP_NAME,
    version="1.0.0",
    description="Archive online videos with thumbnail, subtitles, chapters and metadata "
                "into a single mkv (yt-dlp + ffmpeg)",
    packages=[
        "ytarchive",
        "ytarchive.core",
        "ytarchive.cli",
    ],
    install_requires=[
        "requests>=2.28.0",
    ],
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "ytarchive = ytarchive.cli.cli_main:run",
        ],
    },
)
