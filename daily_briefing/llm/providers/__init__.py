"""Classifier provider implementations."""

from .base import ClassifierError, ClassifierProvider
from .factory import available_providers, create_provider

__all__ = ["ClassifierError", "ClassifierProvider", "available_providers", "create_provider"]
