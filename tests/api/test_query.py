from quickbooks_mcp.api.query import (
    account_search_conditions,
    build_select,
    customer_search_conditions,
    equals,
    escape_literal,
    starts_with,
)


def test_escape_literal_escapes_single_quotes():
    assert escape_literal("O'Brien's") == "O\\'Brien\\'s"


def test_condition_helpers():
    assert equals("Active", True) == "Active = true"
    assert equals("Active", False) == "Active = false"
    assert equals("AccountType", "Bank") == "AccountType = 'Bank'"
    assert starts_with("DisplayName", "O'B") == "DisplayName LIKE 'O\\'B%'"


def test_customer_search_example():
    # Arrange
    conditions = customer_search_conditions(active_only=True, display_name="Acme")

    # Act
    statement = build_select("Customer", conditions, max_results=10)

    # Assert
    assert statement == (
        "SELECT * FROM Customer WHERE Active = true AND DisplayName LIKE 'Acme%' "
        "ORDER BY Metadata.LastUpdatedTime DESC STARTPOSITION 1 MAXRESULTS 10"
    )


def test_customer_search_uses_all_prefix_fields():
    conditions = customer_search_conditions(
        active_only=False,
        display_name="A",
        company_name="B",
        given_name="C",
        family_name="D",
        email="e@",
        phone="555",
    )

    assert conditions == [
        "Active = false",
        "DisplayName LIKE 'A%'",
        "CompanyName LIKE 'B%'",
        "GivenName LIKE 'C%'",
        "FamilyName LIKE 'D%'",
        "PrimaryEmailAddr.Address LIKE 'e@%'",
        "PrimaryPhone.FreeFormNumber LIKE '555%'",
    ]


def test_empty_prefixes_are_ignored():
    assert customer_search_conditions(active_only=None, display_name="") == []


def test_list_statement_without_where():
    assert build_select("Account", start_position=51, max_results=50) == (
        "SELECT * FROM Account ORDER BY Metadata.LastUpdatedTime DESC "
        "STARTPOSITION 51 MAXRESULTS 50"
    )


def test_account_search_statement():
    conditions = account_search_conditions(
        active_only=True,
        name="Check",
        account_type="Bank",
        account_sub_type="Checking",
        classification="Asset",
    )

    statement = build_select("Account", conditions, order_by="Name", sort="ASC")

    assert statement == (
        "SELECT * FROM Account WHERE Active = true AND Name LIKE 'Check%' "
        "AND AccountType = 'Bank' AND AccountSubType = 'Checking' "
        "AND Classification = 'Asset' "
        "ORDER BY Name ASC STARTPOSITION 1 MAXRESULTS 50"
    )


def test_exact_lookup_without_paging():
    statement = build_select(
        "Customer",
        [equals("DisplayName", "Bob's Burgers")],
        order_by=None,
        start_position=None,
        max_results=None,
    )

    assert statement == "SELECT * FROM Customer WHERE DisplayName = 'Bob\\'s Burgers'"
