"""Customer tools."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from quickbooks_mcp.api import query
from quickbooks_mcp.api.client import QuickBooksClient
from quickbooks_mcp.api.updates import CUSTOMER, set_entity_active, update_entity
from quickbooks_mcp.server.tools import ToolManager
from quickbooks_mcp.tools.common import (
    EMAIL_PATTERN,
    PaginationInput,
    SetActiveInput,
    ToolInput,
    query_rows,
    tool_from_model,
)

CustomerOrderBy = Literal["Id", "DisplayName", "Metadata.LastUpdatedTime"]


class AddressInput(ToolInput):
    line1: str | None = None
    line2: str | None = None
    city: str | None = None
    country_sub_division_code: str | None = None
    postal_code: str | None = None
    country: str | None = None


class CustomerFields(ToolInput):
    """Customer fields shared by create and update."""

    title: str | None = None
    given_name: str | None = None
    middle_name: str | None = None
    family_name: str | None = None
    suffix: str | None = None
    company_name: str | None = None
    primary_email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    primary_phone: str | None = None
    mobile_phone: str | None = None
    fax: str | None = None
    notes: str | None = None
    tax_exempt: bool | None = None
    bill_addr: AddressInput | None = None
    ship_addr: AddressInput | None = None


class CustomerCreateInput(CustomerFields):
    display_name: str = Field(min_length=1, description="Customer DisplayName")


class CustomerUpdateInput(CustomerFields):
    customer_id: str = Field(min_length=1, description="Customer Id for update")
    sparse: bool = Field(default=True, description="Perform sparse update (recommended)")
    display_name: str | None = None


class CustomerIdInput(ToolInput):
    customer_id: str = Field(min_length=1, description="The QuickBooks customer ID")


class CustomerActiveInput(SetActiveInput):
    customer_id: str = Field(min_length=1, description="Customer Id")


class CustomerDisplayNameInput(ToolInput):
    display_name: str = Field(min_length=1)


class CustomerSearchInput(PaginationInput):
    display_name: str | None = None
    company_name: str | None = None
    given_name: str | None = None
    family_name: str | None = None
    email: str | None = None
    phone: str | None = None
    active_only: bool = True
    order_by: CustomerOrderBy = query.DEFAULT_ORDER_BY
    sort: query.SortOrder = "DESC"


def register_customer_tools(tools: ToolManager, client: QuickBooksClient) -> None:
    """Register all customer tools against ``client``."""

    async def get_customer_by_id(arguments: dict[str, Any]) -> Any:
        args = CustomerIdInput.model_validate(arguments)
        data = await client.execute(CUSTOMER.entity_endpoint(args.customer_id))
        return CUSTOMER.unwrap(data)

    async def list_customers(arguments: dict[str, Any]) -> list[Any]:
        args = PaginationInput.model_validate(arguments)
        statement = query.build_select(
            CUSTOMER.name,
            start_position=args.start_position,
            max_results=args.max_results,
        )
        return query_rows(await client.query(statement), CUSTOMER.name)

    async def search_customers(arguments: dict[str, Any]) -> list[Any]:
        args = CustomerSearchInput.model_validate(arguments)
        conditions = query.customer_search_conditions(
            active_only=args.active_only,
            display_name=args.display_name,
            company_name=args.company_name,
            given_name=args.given_name,
            family_name=args.family_name,
            email=args.email,
            phone=args.phone,
        )
        statement = query.build_select(
            CUSTOMER.name,
            conditions,
            order_by=args.order_by,
            sort=args.sort,
            start_position=args.start_position,
            max_results=args.max_results,
        )
        return query_rows(await client.query(statement), CUSTOMER.name)

    async def create_customer(arguments: dict[str, Any]) -> Any:
        args = CustomerCreateInput.model_validate(arguments)
        body = CUSTOMER.map_fields(args.fields())
        data = await client.execute(CUSTOMER.resource, method="POST", body=body)
        return CUSTOMER.unwrap(data)

    async def update_customer(arguments: dict[str, Any]) -> Any:
        args = CustomerUpdateInput.model_validate(arguments)
        return await update_entity(
            client,
            CUSTOMER,
            args.customer_id,
            args.fields("customer_id", "sparse"),
            sparse=args.sparse,
        )

    async def set_customer_active(arguments: dict[str, Any]) -> Any:
        args = CustomerActiveInput.model_validate(arguments)
        return await set_entity_active(client, CUSTOMER, args.customer_id, args.active)

    async def get_customer_by_display_name(arguments: dict[str, Any]) -> Any:
        args = CustomerDisplayNameInput.model_validate(arguments)
        statement = query.build_select(
            CUSTOMER.name,
            [query.equals("DisplayName", args.display_name)],
            order_by=None,
            start_position=None,
            max_results=None,
        )
        rows = query_rows(await client.query(statement), CUSTOMER.name)
        return rows[0] if rows else None

    tools.register(
        tool_from_model(
            "get_customer_by_id", "Fetch a QuickBooks customer by ID", CustomerIdInput
        ),
        get_customer_by_id,
    )
    tools.register(
        tool_from_model(
            "list_customers",
            "List customers with pagination (uses QBO query endpoint)",
            PaginationInput,
        ),
        list_customers,
    )
    tools.register(
        tool_from_model(
            "search_customers",
            "Search customers by name/email/phone with optional pagination",
            CustomerSearchInput,
        ),
        search_customers,
    )
    tools.register(
        tool_from_model(
            "create_customer", "Create a new QuickBooks customer", CustomerCreateInput
        ),
        create_customer,
    )
    tools.register(
        tool_from_model(
            "update_customer",
            "Update an existing QuickBooks customer (uses sparse update by default)",
            CustomerUpdateInput,
        ),
        update_customer,
    )
    tools.register(
        tool_from_model(
            "set_customer_active",
            "Activate or deactivate a customer (Active=true/false)",
            CustomerActiveInput,
        ),
        set_customer_active,
    )
    tools.register(
        tool_from_model(
            "get_customer_by_display_name",
            "Fetch a single customer whose DisplayName matches exactly",
            CustomerDisplayNameInput,
        ),
        get_customer_by_display_name,
    )
