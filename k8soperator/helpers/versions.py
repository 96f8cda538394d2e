"""
Detecting the package's own version, once at import time.

The version is only used to self-identify in the ``User-Agent`` header.
"""
import importlib.metadata
from typing import Optional

DISTRIBUTION_NAME = 'k8s-operator'

version: Optional[str]
try:
    version = importlib.metadata.version(DISTRIBUTION_NAME)
except importlib.metadata.PackageNotFoundError:
    version = None  # running from a source checkout


def user_agent() -> str:
    return f'{DISTRIBUTION_NAME}/{version or "unknown"}'
