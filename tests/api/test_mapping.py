from quickbooks_mcp.api.mapping import map_account_fields, map_customer_fields


class TestCustomerMapping:
    def test_maps_names_contacts_and_addresses(self):
        # Arrange
        fields = {
            "display_name": "Acme Ltd",
            "given_name": "Ada",
            "family_name": "Lovelace",
            "company_name": "Acme",
            "primary_email": "ada@acme.test",
            "primary_phone": "555-0100",
            "mobile_phone": "555-0101",
            "fax": "555-0102",
            "notes": "VIP",
            "bill_addr": {"line1": "1 Main St", "city": "Springfield", "postal_code": None},
            "ship_addr": {"country": "US"},
        }

        # Act
        qbo = map_customer_fields(fields)

        # Assert
        assert qbo == {
            "DisplayName": "Acme Ltd",
            "CompanyName": "Acme",
            "GivenName": "Ada",
            "FamilyName": "Lovelace",
            "Notes": "VIP",
            "PrimaryEmailAddr": {"Address": "ada@acme.test"},
            "PrimaryPhone": {"FreeFormNumber": "555-0100"},
            "Mobile": {"FreeFormNumber": "555-0101"},
            "Fax": {"FreeFormNumber": "555-0102"},
            "BillAddr": {"Line1": "1 Main St", "City": "Springfield"},
            "ShipAddr": {"Country": "US"},
        }

    def test_tax_exempt_is_inverted_to_taxable(self):
        assert map_customer_fields({"tax_exempt": True}) == {"Taxable": False}
        assert map_customer_fields({"tax_exempt": False}) == {"Taxable": True}

    def test_active_flag(self):
        assert map_customer_fields({"active": False}) == {"Active": False}

    def test_partial_input_emits_only_present_keys(self):
        assert map_customer_fields({"notes": "x", "title": ""}) == {"Notes": "x"}

    def test_input_is_not_mutated(self):
        # Arrange
        fields = {"display_name": "Acme", "bill_addr": {"line1": "1 Main St"}}
        snapshot = {"display_name": "Acme", "bill_addr": {"line1": "1 Main St"}}

        # Act
        map_customer_fields(fields)

        # Assert
        assert fields == snapshot


class TestAccountMapping:
    def test_maps_text_refs_and_flags(self):
        # Act
        qbo = map_account_fields(
            {
                "name": "Operating",
                "account_type": "Bank",
                "account_sub_type": "Checking",
                "classification": "Asset",
                "account_number": "1010",
                "description": "Main account",
                "currency_ref": "USD",
                "parent_ref": "12",
                "tax_code_ref": "TAX",
                "sub_account": True,
                "active": True,
            }
        )

        # Assert
        assert qbo == {
            "Name": "Operating",
            "AccountType": "Bank",
            "AccountSubType": "Checking",
            "Description": "Main account",
            "Classification": "Asset",
            "AcctNum": "1010",
            "TaxCodeRef": {"value": "TAX"},
            "CurrencyRef": {"value": "USD"},
            "ParentRef": {"value": "12"},
            "SubAccount": True,
            "Active": True,
        }

    def test_current_balance_must_be_numeric(self):
        assert map_account_fields({"current_balance": 10.5}) == {"CurrentBalance": 10.5}
        assert map_account_fields({"current_balance": True}) == {}
        assert map_account_fields({"current_balance": "10"}) == {}

    def test_empty_input(self):
        assert map_account_fields({}) == {}
