"""
Source package for the SIFAZ Manual Assistant.
"""

from .config import rag_settings, paths
from .logging_config import logger

__all__ = ["rag_settings", "paths", "logger"]
