from setuptools import setup, find_packages

setup(
    name="racebench",
    version="0.1.0",
    description="Round-trip latency race between RPyC, HTTP and WebSocket transports",
    author="",
    packages=find_packages(),
    package_data={
        "racebench": ["fixtures/*kb"],
    },
    install_requires=[
        "rpyc>=5.3.0",
        "requests>=2.31.0",
        "flask>=3.0.0",
        "werkzeug>=3.0.0",
        "websockets>=13.0",
        "numpy>=1.24.0",
        "pandas>=2.0.0",
        "matplotlib>=3.7.0",
        "psutil>=5.9.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "racebench=racebench.runners.cli:main",
        ],
    },
)
