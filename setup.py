#!/usr/bin/env python3
"""
Setup script for wsduplex, an interactive duplex WebSocket client
"""

from setuptools import setup, find_packages

setup(
    name="wsduplex",
    version="0.3.0",
    description="Interactive WebSocket client: type lines out, watch frames come in",
    packages=find_packages(include=["wsclient", "wsclient.*", "wsserver", "wsserver.*", "wsshared", "wsshared.*"]),
    install_requires=[
        "websockets>=15.0",
        "typer>=0.15",
        "rich>=13.7",
    ],
    extras_require={
        "test": [
            "pytest>=8.3",
            "pytest-asyncio>=0.23",
        ],
    },
    python_requires=">=3.10",
    entry_points={
        'console_scripts': [
            'wsduplex=wsclient.cli:run',
            'wsduplex-echo=wsserver.echo:run',
        ],
    },
)
