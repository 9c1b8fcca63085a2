from setuptools import setup, find_packages

setup(
    name="lan_rendezvous",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "qasync>=0.27.1",
        "PyQt5>=5.15.11",
        "psutil>=5.9.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "lan-rendezvous=lan_rendezvous.__main__:main",
        ],
    },
    description="Serverless LAN peer discovery and chat over UDP broadcast and TCP",
    keywords="p2p, lan, discovery, broadcast, chat",
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
    ],
)
