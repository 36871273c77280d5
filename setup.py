# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="solvency",
    version="0.1.0",
    packages=find_namespace_packages(include=["solvency", "solvency.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pycryptodome>=3.20", # keccak field hash, ed25519 point codec
        "msgpack",            # tree serialization
        "PyNaCl",             # ed25519 mock custodian
        "psutil",             # monitoring
        "prometheus_client",  # monitoring
    ],
    extras_require={
        "test": ["pytest"],
    },
)
