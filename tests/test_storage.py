"""
Tests for contact and audit storage.

Google Sheets is never contacted: the worksheet is replaced by a small fake
that keeps rows in a list.
"""

from uuid import uuid4

import pytest

from src.models.audit import AuditEventBuilder
from src.models.contact import ContactRecord, TypedEntry
from src.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsContactStorage,
    InMemoryAuditStorage,
    InMemoryContactStorage,
    contact_matches,
    sort_contacts,
)
from src.services.storage.google_sheets import AUDIT_COLUMNS, CONTACT_COLUMNS


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage classes."""

    def __init__(self, header: list[str]):
        self.rows: list[list[str]] = [list(header)]

    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def update(self, range_name, values, value_input_option=None):
        row_index = int(range_name[1:])
        self.rows[row_index - 1] = [str(v) for v in values[0]]

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self):
        self.contacts = FakeWorksheet(CONTACT_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_contacts_sheet(self):
        return self.contacts

    def get_audit_sheet(self):
        return self.audit


def _contact(name: str, **kwargs) -> ContactRecord:
    return ContactRecord(formatted_name=name, **kwargs)


class TestSearchRules:
    """Tests for the shared search and sort helpers."""

    def test_empty_search_matches_everything(self):
        assert contact_matches(_contact("Anyone"), None) is True
        assert contact_matches(_contact("Anyone"), "") is True

    def test_name_match_is_case_insensitive(self):
        assert contact_matches(_contact("Jane Doe"), "jane") is True

    def test_organization_and_email_match(self):
        contact = _contact(
            "X",
            organization="Acme Corp",
            emails=[TypedEntry(kind="INTERNET", value="X@Example.com")],
        )
        assert contact_matches(contact, "acme") is True
        assert contact_matches(contact, "example.COM") is True

    def test_phone_match_is_substring(self):
        contact = _contact("Y", telephones=[TypedEntry(kind="CELL", value="09121234567")])
        assert contact_matches(contact, "1234") is True
        assert contact_matches(contact, "9999") is False

    def test_sort_is_case_insensitive(self):
        names = [c.formatted_name for c in sort_contacts([
            _contact("bob"), _contact("Alice"), _contact("carol"),
        ])]
        assert names == ["Alice", "bob", "carol"]


class TestInMemoryContactStorage:
    """Tests for the dict-backed contact storage."""

    @pytest.mark.asyncio
    async def test_save_is_upsert(self):
        storage = InMemoryContactStorage()
        contact = _contact("Jane")
        await storage.save_contact(contact)

        renamed = contact.model_copy(update={"formatted_name": "Jane Doe"})
        await storage.save_contact(renamed)

        contacts = await storage.list_contacts()
        assert len(contacts) == 1
        assert contacts[0].formatted_name == "Jane Doe"

    @pytest.mark.asyncio
    async def test_returned_contacts_are_copies(self):
        contact = _contact("Jane")
        storage = InMemoryContactStorage([contact])

        fetched = await storage.get_contact_by_id(contact.id)
        fetched.telephones.append(TypedEntry(kind="CELL", value="1"))

        again = await storage.get_contact_by_id(contact.id)
        assert again.telephones == []

    @pytest.mark.asyncio
    async def test_list_search_limit_offset(self):
        storage = InMemoryContactStorage([
            _contact("Ann"), _contact("Andy"), _contact("Bob"), _contact("Anna"),
        ])

        matches = await storage.list_contacts(search="an")
        assert [c.formatted_name for c in matches] == ["Andy", "Ann", "Anna"]

        page = await storage.list_contacts(search="an", limit=1, offset=1)
        assert [c.formatted_name for c in page] == ["Ann"]

    @pytest.mark.asyncio
    async def test_delete_and_existing_names(self):
        jane = _contact("Jane")
        storage = InMemoryContactStorage([jane, _contact("John")])

        assert await storage.delete_contact(jane.id) is True
        assert await storage.delete_contact(jane.id) is False
        assert await storage.existing_names() == {"John"}
        assert await storage.get_contact_by_id(jane.id) is None


class TestGoogleSheetsContactStorage:
    """Row mapping and upsert against a fake worksheet."""

    @pytest.mark.asyncio
    async def test_row_round_trip_keeps_entry_order(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsContactStorage(client=client)
        contact = _contact(
            "Jane Doe",
            organization="Acme",
            note="first\nsecond",
            telephones=[
                TypedEntry(kind="CELL", value="0912"),
                TypedEntry(kind="HOME", value="021"),
            ],
            emails=[TypedEntry(kind="INTERNET", value="jane@example.com")],
            photo="cld:phone_book/jane",
        )

        await storage.save_contact(contact)
        loaded = await storage.get_contact_by_id(contact.id)

        assert loaded == contact
        assert len(client.contacts.rows) == 2

    @pytest.mark.asyncio
    async def test_save_updates_existing_row(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsContactStorage(client=client)
        contact = _contact("Old")
        await storage.save_contact(contact)
        await storage.save_contact(contact.model_copy(update={"formatted_name": "New"}))

        assert len(client.contacts.rows) == 2
        assert client.contacts.rows[1][1] == "New"

    @pytest.mark.asyncio
    async def test_list_skips_malformed_rows(self):
        client = FakeSheetsClient()
        client.contacts.rows.append(["not-a-uuid", "Broken"])
        client.contacts.rows.append([])
        storage = GoogleSheetsContactStorage(client=client)
        await storage.save_contact(_contact("Valid"))

        contacts = await storage.list_contacts()
        assert [c.formatted_name for c in contacts] == ["Valid"]
        assert await storage.existing_names() == {"Valid"}

    @pytest.mark.asyncio
    async def test_delete_contact(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsContactStorage(client=client)
        contact = _contact("Gone")
        await storage.save_contact(contact)

        assert await storage.delete_contact(contact.id) is True
        assert await storage.delete_contact(uuid4()) is False
        assert len(client.contacts.rows) == 1


class TestAuditStorage:
    """Both audit backends keep events append-only and queryable."""

    @pytest.mark.asyncio
    async def test_in_memory_correlation_lookup(self):
        storage = InMemoryAuditStorage()
        correlation_id = uuid4()
        await storage.append_event(
            AuditEventBuilder.contacts_imported("a.vcf", 1, 0, correlation_id)
        )
        await storage.append_event(
            AuditEventBuilder.contacts_exported(1, 0, uuid4())
        )

        events = await storage.get_events_by_correlation_id(correlation_id)
        assert len(events) == 1
        assert len(await storage.get_recent_events(limit=10)) == 2

    @pytest.mark.asyncio
    async def test_sheets_event_round_trip(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsAuditStorage(client=client)
        correlation_id = uuid4()
        event = AuditEventBuilder.duplicates_skipped(
            "phone.vcf", ["Jane Doe"], correlation_id
        )

        await storage.append_event(event)
        events = await storage.get_events_by_correlation_id(correlation_id)

        assert len(events) == 1
        assert events[0].event_id == event.event_id
        assert events[0].details == {"filename": "phone.vcf", "names": ["Jane Doe"]}
        assert events[0].is_user_action is False
