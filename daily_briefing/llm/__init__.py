"""LLM classification: prompts, reply parsing and providers."""

from .parsing import parse_classification
from .prompts import build_classify_prompt, build_system_prompt
from .providers import ClassifierError, ClassifierProvider, available_providers, create_provider

__all__ = [
    "ClassifierError",
    "ClassifierProvider",
    "available_providers",
    "build_classify_prompt",
    "build_system_prompt",
    "create_provider",
    "parse_classification",
]
