"""
videoconverter — setuptools build script.

Usage:
    # Development (editable install):
    pip install -e ".[test]"

    # Run a task:
    videoconverter '{"video_id": 2, "path": "media/uploads/2"}'

The console script wraps main.main().
"""

from setuptools import setup, find_namespace_packages

APP_NAME = "videoconverter"

setup(
    name=APP_NAME,
    version="1.0.0",
    description="Merge uploaded video chunks and package them as MPEG-DASH",
    packages=find_namespace_packages(include=["videoconverter", "videoconverter.*"]),
    py_modules=["main"],
    install_requires=[
        "psycopg2-binary>=2.9",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "videoconverter=main:main",
        ],
    },
)
