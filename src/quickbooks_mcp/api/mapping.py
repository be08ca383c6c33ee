"""Translation from simplified field names to QuickBooks entity fields.

Mappers are partial: only keys present in the input (and non-empty, for
strings) are emitted. They build a new dict and never modify their input.
"""

from __future__ import annotations

from typing import Any, Mapping

CUSTOMER_TEXT_FIELDS = {
    "display_name": "DisplayName",
    "company_name": "CompanyName",
    "title": "Title",
    "given_name": "GivenName",
    "middle_name": "MiddleName",
    "family_name": "FamilyName",
    "suffix": "Suffix",
    "notes": "Notes",
}

CUSTOMER_PHONE_FIELDS = {
    "primary_phone": "PrimaryPhone",
    "mobile_phone": "Mobile",
    "fax": "Fax",
}

ADDRESS_FIELDS = {
    "line1": "Line1",
    "line2": "Line2",
    "city": "City",
    "country_sub_division_code": "CountrySubDivisionCode",
    "postal_code": "PostalCode",
    "country": "Country",
}

ACCOUNT_TEXT_FIELDS = {
    "name": "Name",
    "fully_qualified_name": "FullyQualifiedName",
    "account_type": "AccountType",
    "account_sub_type": "AccountSubType",
    "description": "Description",
    "classification": "Classification",
    "account_number": "AcctNum",
}

ACCOUNT_REF_FIELDS = {
    "tax_code_ref": "TaxCodeRef",
    "currency_ref": "CurrencyRef",
    "parent_ref": "ParentRef",
}


def _map_address(address: Mapping[str, Any]) -> dict[str, Any]:
    return {
        remote: address[local]
        for local, remote in ADDRESS_FIELDS.items()
        if address.get(local) is not None
    }


def map_customer_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Map customer input to the QuickBooks ``Customer`` shape."""
    qbo: dict[str, Any] = {}

    for local, remote in CUSTOMER_TEXT_FIELDS.items():
        if fields.get(local):
            qbo[remote] = fields[local]

    # QuickBooks stores the inverse flag
    if isinstance(fields.get("tax_exempt"), bool):
        qbo["Taxable"] = not fields["tax_exempt"]
    if isinstance(fields.get("active"), bool):
        qbo["Active"] = fields["active"]

    if fields.get("primary_email"):
        qbo["PrimaryEmailAddr"] = {"Address": fields["primary_email"]}
    for local, remote in CUSTOMER_PHONE_FIELDS.items():
        if fields.get(local):
            qbo[remote] = {"FreeFormNumber": fields[local]}

    if fields.get("bill_addr"):
        qbo["BillAddr"] = _map_address(fields["bill_addr"])
    if fields.get("ship_addr"):
        qbo["ShipAddr"] = _map_address(fields["ship_addr"])

    return qbo


def map_account_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Map account input to the QuickBooks ``Account`` shape."""
    qbo: dict[str, Any] = {}

    for local, remote in ACCOUNT_TEXT_FIELDS.items():
        if fields.get(local):
            qbo[remote] = fields[local]

    for local, remote in ACCOUNT_REF_FIELDS.items():
        if fields.get(local):
            qbo[remote] = {"value": fields[local]}

    if isinstance(fields.get("sub_account"), bool):
        qbo["SubAccount"] = fields["sub_account"]
    # Read-only on most account types; passed through when given
    current_balance = fields.get("current_balance")
    if isinstance(current_balance, (int, float)) and not isinstance(
        current_balance, bool
    ):
        qbo["CurrentBalance"] = current_balance
    if isinstance(fields.get("active"), bool):
        qbo["Active"] = fields["active"]

    return qbo
