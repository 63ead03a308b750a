"""
BeeBark Backend — Pydantic Request/Response Schemas
=====================================================

Schemas are separate from the SQLAlchemy models: they decide exactly which
user fields are projected into each response.
"""
