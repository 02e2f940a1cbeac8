"""Base schema class for immutable snapshots."""

from pydantic import BaseModel, ConfigDict


class FrozenSchema(BaseModel):
    """Base class for immutable snapshot schemas.

    Instances are never modified in place; ``with_*`` helpers return copies.
    """

    model_config = ConfigDict(
        frozen=True,
        from_attributes=True,
        populate_by_name=True,
    )
