"""
Base schemas for all models.
"""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base for all schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )


class FrozenSchema(BaseModel):
    """
    Base for immutable value objects.

    Instances cannot be modified after creation; use
    model_copy(update=...) to derive a changed copy. Only models whose fields
    are all hashable (tuples, not lists or dicts) can be hashed.
    """
    model_config = ConfigDict(
        from_attributes=True,
        frozen=True
    )
