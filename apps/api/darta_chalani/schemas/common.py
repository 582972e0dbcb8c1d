"""Shared pydantic base classes.

Inputs accept both camelCase (wire format) and snake_case field names, and are
frozen once validated: a validated input is the command the orchestrator runs.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CommandModel(BaseModel):
    """Base for mutation inputs."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
    )


class ReadModel(BaseModel):
    """Base for responses built from ORM objects."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
