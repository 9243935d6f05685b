"""
localcontent/models/ -- Pydantic v2 models for the content engine.

Submodules:
    factory     Dynamic model generation from global schemas, plus coercion.
"""

from localcontent.models.factory import ModelFactory, ReferenceValue, ValidationResult

__all__ = ["ModelFactory", "ReferenceValue", "ValidationResult"]
