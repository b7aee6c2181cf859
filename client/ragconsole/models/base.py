"""
Shared base model for backend payloads.

The backend speaks camelCase JSON; Python code uses snake_case attributes.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from ragconsole.core.errors import MalformedResponseError


class WireModel(BaseModel):
    """Base model that reads and writes camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_wire(cls, payload: Any):
        """
        Validate a decoded response body.

        Raises:
            MalformedResponseError: The body is not an object or does not
                fit the model.
        """
        if not isinstance(payload, dict):
            raise MalformedResponseError(f"{cls.__name__} response is not an object")
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise MalformedResponseError(f"Unexpected {cls.__name__} response: {exc}") from exc

    def to_wire(self) -> dict:
        """Dump to a JSON-ready dict using backend field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
