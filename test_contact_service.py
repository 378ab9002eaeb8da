# test_contact_service.py
"""
Tests for the contact directory and rental contract master.
Run with: python -m pytest test_contact_service.py -v
"""

import unittest

from database import open_store
from services import contact_service, contract_service


class TestContacts(unittest.TestCase):
    def setUp(self):
        self.store = open_store(":memory:")

    def tearDown(self):
        self.store.close()

    def _add(self, **overrides):
        data = {
            "name": "Omar Haddad",
            "contactNumber": "+966 55 123 4567",
            "email": "omar@acme-rentals.com",
            "companyName": "Acme Rentals",
            "location": "Jubail",
        }
        data.update(overrides)
        return contact_service.add_contact(self.store, data)

    def test_add_and_list(self):
        contact = self._add()
        self.assertTrue(contact.id)
        self.assertEqual(self.store.load_contacts(), [contact])

    def test_invalid_email(self):
        for email in ("", "omar", "omar@acme", "om ar@acme.com"):
            with self.assertRaises(ValueError):
                self._add(email=email)
        self.assertEqual(self.store.load_contacts(), [])

    def test_invalid_phone(self):
        for phone in ("12345", "call me", "1" * 17):
            with self.assertRaises(ValueError):
                self._add(contactNumber=phone)

    def test_missing_name(self):
        with self.assertRaises(ValueError):
            self._add(name=" ")

    def test_delete(self):
        contact = self._add()
        contact_service.delete_contact(self.store, contact.id)
        self.assertEqual(self.store.load_contacts(), [])
        with self.assertRaises(KeyError):
            contact_service.delete_contact(self.store, contact.id)

    def test_search(self):
        self._add()
        self._add(name="Lina", email="lina@bolt.io", companyName="Bolt Co")
        contacts = self.store.load_contacts()
        self.assertEqual([c.name for c in contact_service.search_contacts(contacts, "bolt")], ["Lina"])
        self.assertEqual(len(contact_service.search_contacts(contacts, "ACME")), 1)
        self.assertEqual(len(contact_service.search_contacts(contacts, "")), 2)


class TestLinks(unittest.TestCase):
    def test_whatsapp_strips_non_digits(self):
        self.assertEqual(contact_service.whatsapp_link("+966 (55) 123-4567"), "https://wa.me/966551234567")

    def test_whatsapp_too_short(self):
        with self.assertRaises(ValueError):
            contact_service.whatsapp_link("12-34")

    def test_mail_links(self):
        self.assertEqual(contact_service.mailto_link("a@b.co"), "mailto:a@b.co")
        self.assertEqual(
            contact_service.outlook_web_link("a+b@b.co"),
            "https://outlook.office.com/mail/deeplink/compose?to=a%2Bb@b.co",
        )


class TestContracts(unittest.TestCase):
    def setUp(self):
        self.store = open_store(":memory:")

    def tearDown(self):
        self.store.close()

    def test_add_search_delete(self):
        contract = contract_service.add_contract(self.store, {
            "companyName": "Acme Rentals", "equipmentType": "Gas Detector",
            "rateType": "Weekly", "rateValue": 700,
        })
        contract_service.add_contract(self.store, {"companyName": "Bolt Co", "equipmentType": "Scaffold"})
        contracts = self.store.load_contracts()
        self.assertEqual(len(contracts), 2)
        self.assertEqual(len(contract_service.search_contracts(contracts, "gas")), 1)
        self.assertEqual(len(contract_service.search_contracts(contracts, "bolt")), 1)
        contract_service.delete_contract(self.store, contract.id)
        self.assertEqual([c.company_name for c in self.store.load_contracts()], ["Bolt Co"])
        with self.assertRaises(KeyError):
            contract_service.delete_contract(self.store, contract.id)

    def test_validation(self):
        with self.assertRaises(ValueError):
            contract_service.add_contract(self.store, {"companyName": ""})
        with self.assertRaises(ValueError):
            contract_service.add_contract(self.store, {"companyName": "X", "rateType": "Hourly"})
        with self.assertRaises(ValueError):
            contract_service.add_contract(self.store, {"companyName": "X", "rateValue": -5})

    def test_vendor_names_distinct_in_order(self):
        contract_service.add_contract(self.store, {"companyName": "Bolt Co"})
        contract_service.add_contract(self.store, {"companyName": "Acme"})
        contract_service.add_contract(self.store, {"companyName": " Bolt Co "})
        self.assertEqual(contract_service.vendor_names(self.store.load_contracts()), ["Bolt Co", "Acme"])


if __name__ == "__main__":
    unittest.main()
