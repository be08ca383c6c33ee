"""Shared input models and helpers for the QuickBooks tools."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from quickbooks_mcp.server.protocol import Tool

# Loose check; QuickBooks validates addresses itself
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class ToolInput(BaseModel):
    """Base for tool arguments: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def fields(self, *exclude: str) -> dict[str, Any]:
        """Return the given fields as a snake_case dict, leaving out unset ones."""
        return self.model_dump(exclude_none=True, exclude=set(exclude))


class PaginationInput(ToolInput):
    start_position: int = Field(
        default=1, ge=1, description="Query start position (1-based)"
    )
    max_results: int = Field(
        default=50, ge=1, le=1000, description="Max results (1-1000)"
    )


class SetActiveInput(ToolInput):
    active: bool = Field(description="Set Active true/false")


def tool_from_model(name: str, description: str, model: type[BaseModel]) -> Tool:
    """Describe a tool whose arguments are validated by ``model``."""
    return Tool(
        name=name,
        description=description,
        input_schema=model.model_json_schema(by_alias=True),
    )


def query_rows(data: dict[str, Any], entity: str) -> list[Any]:
    """Pull the entity list out of a query response (empty when no rows)."""
    return data.get("QueryResponse", {}).get(entity, [])
