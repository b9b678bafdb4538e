"""Analysis stages that enrich stored articles."""

from .classifier import ClassificationCoordinator

__all__ = ["ClassificationCoordinator"]
