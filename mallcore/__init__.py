"""Mall business logic: payment validation, OAuth sign-in helpers and an in-memory category tree."""

__version__ = "0.1.0"

__all__ = [
    "auth",
    "category",
    "category_models",
    "category_service",
    "validation",
]