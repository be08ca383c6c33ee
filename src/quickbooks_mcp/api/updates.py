"""Optimistic-concurrency updates for QuickBooks entities.

QuickBooks rejects an update unless it carries the entity's current
``SyncToken``. Each update therefore reads the entity, builds the write
body around the token it just read, and posts it once. A conflict reported
by the service is returned to the caller as-is; it is never retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping
from urllib.parse import quote

from quickbooks_mcp.api.client import QuickBooksClient
from quickbooks_mcp.api.mapping import map_account_fields, map_customer_fields
from quickbooks_mcp.errors import EntityNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntityKind:
    """A QuickBooks entity type and how to address and map it."""

    name: str  # Wrapper key in responses, e.g. "Customer"
    resource: str  # Collection path, e.g. "customer"
    map_fields: Callable[[Mapping[str, Any]], dict[str, Any]]

    def entity_endpoint(self, entity_id: str) -> str:
        return f"{self.resource}/{quote(entity_id, safe='')}"

    @property
    def update_endpoint(self) -> str:
        return f"{self.resource}?operation=update"

    def unwrap(self, data: dict[str, Any]) -> Any:
        """Return the wrapped entity, or the raw response if it is absent."""
        return data.get(self.name, data)


CUSTOMER = EntityKind("Customer", "customer", map_customer_fields)
ACCOUNT = EntityKind("Account", "account", map_account_fields)


@dataclass(frozen=True)
class EntityReference:
    id: str
    sync_token: str


async def fetch_entity_reference(
    client: QuickBooksClient, kind: EntityKind, entity_id: str
) -> EntityReference:
    """Read the entity's current id and SyncToken.

    Raises:
        EntityNotFoundError: If the response has no usable record
        RemoteApiError: If the service rejects the read
    """
    data = await client.execute(kind.entity_endpoint(entity_id), method="GET")
    existing = data.get(kind.name) if isinstance(data, dict) else None

    if (
        not isinstance(existing, dict)
        or not existing.get("Id")
        or existing.get("SyncToken") is None
    ):
        raise EntityNotFoundError(
            f"Could not fetch existing {kind.name.lower()} {entity_id} or SyncToken."
        )

    return EntityReference(id=str(existing["Id"]), sync_token=str(existing["SyncToken"]))


def build_update_body(
    reference: EntityReference, fields: dict[str, Any], sparse: bool = True
) -> dict[str, Any]:
    """Build the conditional write body.

    ``fields`` must already be in QuickBooks shape. Identity keys always
    come from ``reference``.
    """
    body: dict[str, Any] = {"Id": reference.id, "SyncToken": reference.sync_token}
    if sparse:
        body["sparse"] = True
    for key, value in fields.items():
        if key not in ("Id", "SyncToken", "sparse"):
            body[key] = value
    return body


async def update_entity(
    client: QuickBooksClient,
    kind: EntityKind,
    entity_id: str,
    patch: Mapping[str, Any],
    sparse: bool = True,
) -> Any:
    """Fetch, patch and conditionally write one entity.

    Args:
        client: Authenticated API client
        kind: Entity type being updated
        entity_id: Id of the entity to update
        patch: Simplified fields to change; only present keys are sent
        sparse: Ask the service to change only the supplied fields

    Returns:
        The updated entity, or the raw response if it is not wrapped

    Raises:
        EntityNotFoundError: If the entity cannot be read before the write
        RemoteApiError: If either call is rejected (including SyncToken conflicts)
    """
    reference = await fetch_entity_reference(client, kind, entity_id)
    body = build_update_body(reference, kind.map_fields(patch), sparse=sparse)

    logger.debug(
        f"Updating {kind.name} {reference.id} at SyncToken {reference.sync_token}"
    )
    data = await client.execute(kind.update_endpoint, method="POST", body=body)
    return kind.unwrap(data)


async def set_entity_active(
    client: QuickBooksClient, kind: EntityKind, entity_id: str, active: bool
) -> Any:
    """Activate or deactivate an entity with a sparse update of ``Active`` only."""
    return await update_entity(client, kind, entity_id, {"active": active}, sparse=True)
