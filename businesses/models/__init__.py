# businesses/models/__init__.py

from .business import Business

__all__ = ["Business"]
