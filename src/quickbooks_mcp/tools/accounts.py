"""Account (chart of accounts) tools."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from quickbooks_mcp.api import query
from quickbooks_mcp.api.client import QuickBooksClient
from quickbooks_mcp.api.updates import ACCOUNT, set_entity_active, update_entity
from quickbooks_mcp.server.tools import ToolManager
from quickbooks_mcp.tools.common import (
    PaginationInput,
    SetActiveInput,
    ToolInput,
    query_rows,
    tool_from_model,
)

AccountOrderBy = Literal["Id", "Name", "FullyQualifiedName", "Metadata.LastUpdatedTime"]


class AccountFields(ToolInput):
    """Account fields shared by create and update."""

    account_sub_type: str | None = Field(
        default=None,
        description="QBO AccountSubType (e.g., Checking, AccountsReceivable)",
    )
    description: str | None = None
    classification: str | None = Field(
        default=None, description="Asset | Liability | Equity | Income | Expense"
    )
    account_number: str | None = None
    currency_ref: str | None = Field(
        default=None, description="ISO currency code (e.g., USD)"
    )
    sub_account: bool | None = None
    parent_ref: str | None = Field(
        default=None, description="Parent Account Id (only if subAccount=true)"
    )
    tax_code_ref: str | None = None
    active: bool | None = None


class AccountCreateInput(AccountFields):
    name: str = Field(min_length=1, description="Account Name")
    account_type: str = Field(
        min_length=1,
        description="QBO AccountType (e.g., Bank, Accounts Receivable, Income, Expense)",
    )


class AccountUpdateInput(AccountFields):
    account_id: str = Field(min_length=1, description="Account Id to update")
    sparse: bool = True
    name: str | None = None
    account_type: str | None = None


class AccountIdInput(ToolInput):
    account_id: str = Field(min_length=1, description="The QuickBooks Account ID")


class AccountActiveInput(SetActiveInput):
    account_id: str = Field(min_length=1, description="Account Id")


class AccountSearchInput(PaginationInput):
    name: str | None = None
    account_type: str | None = None
    account_sub_type: str | None = None
    classification: str | None = None
    active_only: bool = True
    order_by: AccountOrderBy = query.DEFAULT_ORDER_BY
    sort: query.SortOrder = "DESC"


def register_account_tools(tools: ToolManager, client: QuickBooksClient) -> None:
    """Register all account tools against ``client``."""

    async def get_account_by_id(arguments: dict[str, Any]) -> Any:
        args = AccountIdInput.model_validate(arguments)
        data = await client.execute(ACCOUNT.entity_endpoint(args.account_id))
        return ACCOUNT.unwrap(data)

    async def list_accounts(arguments: dict[str, Any]) -> list[Any]:
        args = PaginationInput.model_validate(arguments)
        statement = query.build_select(
            ACCOUNT.name,
            start_position=args.start_position,
            max_results=args.max_results,
        )
        return query_rows(await client.query(statement), ACCOUNT.name)

    async def search_accounts(arguments: dict[str, Any]) -> list[Any]:
        args = AccountSearchInput.model_validate(arguments)
        conditions = query.account_search_conditions(
            active_only=args.active_only,
            name=args.name,
            account_type=args.account_type,
            account_sub_type=args.account_sub_type,
            classification=args.classification,
        )
        statement = query.build_select(
            ACCOUNT.name,
            conditions,
            order_by=args.order_by,
            sort=args.sort,
            start_position=args.start_position,
            max_results=args.max_results,
        )
        return query_rows(await client.query(statement), ACCOUNT.name)

    async def create_account(arguments: dict[str, Any]) -> Any:
        args = AccountCreateInput.model_validate(arguments)
        body = ACCOUNT.map_fields(args.fields())
        data = await client.execute(ACCOUNT.resource, method="POST", body=body)
        return ACCOUNT.unwrap(data)

    async def update_account(arguments: dict[str, Any]) -> Any:
        args = AccountUpdateInput.model_validate(arguments)
        return await update_entity(
            client,
            ACCOUNT,
            args.account_id,
            args.fields("account_id", "sparse"),
            sparse=args.sparse,
        )

    async def set_account_active(arguments: dict[str, Any]) -> Any:
        args = AccountActiveInput.model_validate(arguments)
        return await set_entity_active(client, ACCOUNT, args.account_id, args.active)

    tools.register(
        tool_from_model(
            "get_account_by_id", "Fetch a QuickBooks account by ID", AccountIdInput
        ),
        get_account_by_id,
    )
    tools.register(
        tool_from_model(
            "list_accounts",
            "List accounts with pagination (uses QBO query endpoint)",
            PaginationInput,
        ),
        list_accounts,
    )
    tools.register(
        tool_from_model(
            "search_accounts",
            "Search accounts by name/type/subtype/classification with optional pagination",
            AccountSearchInput,
        ),
        search_accounts,
    )
    tools.register(
        tool_from_model(
            "create_account", "Create a new QuickBooks account", AccountCreateInput
        ),
        create_account,
    )
    tools.register(
        tool_from_model(
            "update_account",
            "Update an existing QuickBooks account (sparse update by default)",
            AccountUpdateInput,
        ),
        update_account,
    )
    tools.register(
        tool_from_model(
            "set_account_active",
            "Activate or deactivate an account (Active=true/false)",
            AccountActiveInput,
        ),
        set_account_active,
    )
