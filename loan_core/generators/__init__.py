"""Synthetic data generators."""

from loan_core.generators.base import BaseGenerator

__all__ = ["BaseGenerator"]
