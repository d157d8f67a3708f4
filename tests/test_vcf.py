"""
Tests for the vCard codec.

The codec is pure, so these tests need no mocks: text in, records out.
"""

import pytest

from src.contacts import (
    count_record_markers,
    decode,
    encode,
    fold_payload,
    split_data_uri,
    unfold_lines,
)
from src.models.contact import ContactRecord, TypedEntry


JANE_VCF = (
    "BEGIN:VCARD\n"
    "VERSION:3.0\n"
    "FN:Jane Doe\n"
    "TEL;TYPE=CELL:0912000000\n"
    "EMAIL;TYPE=INTERNET:jane@example.com\n"
    "NOTE:line1\\nline2\n"
    "END:VCARD\n"
)


def _card(*lines: str, end: bool = True) -> str:
    body = ["BEGIN:VCARD", "VERSION:3.0", *lines]
    if end:
        body.append("END:VCARD")
    return "\r\n".join(body) + "\r\n"


class TestDecodeBasics:
    """Property dispatch and record framing."""

    def test_end_to_end_example(self):
        """The canonical Jane Doe card decodes to one record."""
        records = decode(JANE_VCF)

        assert len(records) == 1
        jane = records[0]
        assert jane.formatted_name == "Jane Doe"
        assert jane.telephones == [TypedEntry(kind="CELL", value="0912000000")]
        assert jane.emails == [TypedEntry(kind="INTERNET", value="jane@example.com")]
        assert jane.note == "line1\nline2"
        assert jane.photo is None

    def test_organization_and_title(self):
        records = decode(_card("FN:Ali Rezaei", "ORG:Acme;R&D", "TITLE:Engineer"))
        assert records[0].organization == "Acme;R&D"
        assert records[0].title == "Engineer"

    def test_missing_fn_yields_nothing(self):
        """A block with TEL but no FN is dropped."""
        text = "BEGIN:VCARD\nTEL:12345\nEND:VCARD\n"
        assert decode(text) == []

    def test_missing_end_marker_yields_nothing(self):
        text = _card("FN:No End", end=False)
        assert decode(text) == []

    def test_empty_input(self):
        assert decode("") == []

    def test_text_before_first_marker_is_ignored(self):
        text = "FN:Ghost\r\nsome preamble\r\n" + _card("FN:Real")
        records = decode(text)
        assert [r.formatted_name for r in records] == ["Real"]

    def test_multiple_cards_keep_order(self):
        text = _card("FN:First") + _card("FN:Second") + _card("FN:Third")
        records = decode(text)
        assert [r.formatted_name for r in records] == ["First", "Second", "Third"]

    def test_broken_block_does_not_affect_neighbours(self):
        text = _card("FN:Before") + _card("TEL:555") + _card("FN:After")
        records = decode(text)
        assert [r.formatted_name for r in records] == ["Before", "After"]

    def test_long_name_does_not_stop_the_file(self):
        long_name = "A" * 201
        records = decode(_card(f"FN:{long_name}") + _card("FN:Next"))
        assert [r.formatted_name for r in records] == [long_name, "Next"]

    def test_long_type_does_not_stop_the_file(self):
        long_kind = "X" * 51
        records = decode(_card("FN:Typed", f"TEL;TYPE={long_kind}:123") + _card("FN:Next"))
        assert records[0].telephones == [TypedEntry(kind=long_kind, value="123")]
        assert records[1].formatted_name == "Next"

    def test_last_fn_wins(self):
        records = decode(_card("FN:Old Name", "FN:New Name"))
        assert records[0].formatted_name == "New Name"

    def test_each_record_gets_a_fresh_id(self):
        records = decode(_card("FN:A") + _card("FN:A"))
        assert records[0].id != records[1].id

    def test_unknown_properties_are_ignored(self):
        records = decode(_card("N:Doe;Jane;;;", "FN:Jane", "BDAY:1990-01-01", "X-FOO:bar"))
        assert records[0].formatted_name == "Jane"

    def test_bare_lf_and_cr_line_endings(self):
        text = "BEGIN:VCARD\rFN:Mac Classic\rEND:VCARD\r"
        assert decode(text)[0].formatted_name == "Mac Classic"

    def test_marker_count_lets_callers_detect_drops(self):
        text = _card("FN:Kept") + _card("TEL:1")
        assert count_record_markers(text) == 2
        assert len(decode(text)) == 1


class TestTypedEntries:
    """TEL and EMAIL handling."""

    def test_multiple_telephones_keep_order_and_kind(self):
        records = decode(_card(
            "FN:Two Phones",
            "TEL;TYPE=CELL:09120000000",
            "TEL;TYPE=HOME:02110000000",
        ))
        tels = records[0].telephones
        assert len(tels) == 2
        assert [t.kind for t in tels] == ["CELL", "HOME"]
        assert tels[0].value == "09120000000"
        assert records[0].primary_telephone == tels[0]

    def test_default_kinds(self):
        records = decode(_card("FN:Defaults", "TEL:123", "EMAIL:a@b.c"))
        assert records[0].telephones[0].kind == "VOICE"
        assert records[0].emails[0].kind == "INTERNET"

    def test_type_is_case_insensitive_and_uppercased(self):
        records = decode(_card("FN:Lower", "TEL;type=cell:123"))
        assert records[0].telephones[0].kind == "CELL"

    def test_first_type_param_wins(self):
        records = decode(_card("FN:Many", "TEL;TYPE=WORK;TYPE=PREF:123"))
        assert records[0].telephones[0].kind == "WORK"

    def test_empty_values_are_dropped(self):
        records = decode(_card("FN:Empty", "TEL;TYPE=CELL:", "EMAIL:  "))
        assert records[0].telephones == []
        assert records[0].emails == []

    def test_grouped_key_value_taken_after_first_colon(self):
        """item1.EMAIL;TYPE=INTERNET:... still yields the address."""
        records = decode(_card(
            "FN:Grouped",
            "item1.EMAIL;TYPE=INTERNET:user@example.com",
            "item1.X-ABLabel:_$!<Home>!$_",
        ))
        assert records[0].emails == [TypedEntry(kind="INTERNET", value="user@example.com")]

    def test_value_keeps_later_colons(self):
        records = decode(_card("FN:Colons", "NOTE:time: 10:30"))
        assert records[0].note == "time: 10:30"

    def test_key_prefix_match(self):
        """Dispatch uses startswith, so TELX is treated as TEL."""
        records = decode(_card("FN:Prefix", "TELX:999"))
        assert records[0].telephones[0].value == "999"


class TestFolding:
    """Line unfolding before property parsing."""

    def test_note_continuation_is_joined(self):
        text = "BEGIN:VCARD\nFN:Folded\nNOTE:Hello\n World\nEND:VCARD\n"
        assert decode(text)[0].note == "Hello World"

    def test_folded_fn(self):
        text = "BEGIN:VCARD\r\nFN:Jane\r\n Doe\r\nEND:VCARD\r\n"
        assert decode(text)[0].formatted_name == "Jane Doe"

    def test_fold_space_is_kept_inside_values(self):
        """Folding keeps the continuation space, even mid-token."""
        text = "BEGIN:VCARD\r\nFN:Jane\r\nEMAIL:jane@exam\r\n ple.com\r\nEND:VCARD\r\n"
        assert decode(text)[0].emails[0].value == "jane@exam ple.com"

    def test_unfold_lines(self):
        assert unfold_lines("A:1\r\n 2\r\nB:3") == ["A:1 2", "B:3"]

    def test_fold_payload_width(self):
        payload = "x" * 200
        folded = fold_payload(payload)
        lines = folded.split("\r\n")
        assert [len(line) for line in lines] == [76, 77, 49]
        assert all(line.startswith(" ") for line in lines[1:])

    def test_fold_payload_exact_multiple_has_no_trailing_blank_line(self):
        folded = fold_payload("y" * 152)
        assert folded == "y" * 76 + "\r\n " + "y" * 76


class TestPhoto:
    """Base64 PHOTO accumulation."""

    def test_folded_photo_payload(self):
        text = "BEGIN:VCARD\r\nFN:Pic\r\nPHOTO;ENCODING=b;TYPE=JPEG:YWJj\r\n abc=\r\nEND:VCARD\r\n"
        records = decode(text)
        assert records[0].photo == "data:image/jpeg;base64,YWJjabc="

    def test_unfolded_payload_lines_are_accumulated(self):
        """Some exporters continue the payload without a leading space."""
        text = _card("FN:Pic", "PHOTO;ENCODING=BASE64;TYPE=JPEG:AAAA", "BBBB", "CC==", "TEL:1")
        record = decode(text)[0]
        assert record.photo == "data:image/jpeg;base64,AAAABBBBCC=="
        assert record.telephones[0].value == "1"

    def test_photo_without_base64_marker_is_ignored(self):
        records = decode(_card("FN:Url", "PHOTO;VALUE=uri:http://example.com/a.jpg"))
        assert records[0].photo is None

    def test_last_photo_wins(self):
        records = decode(_card(
            "FN:Twice",
            "PHOTO;ENCODING=b;TYPE=JPEG:Zmlyc3Q=",
            "PHOTO;ENCODING=b;TYPE=JPEG:c2Vjb25k",
        ))
        assert records[0].photo == "data:image/jpeg;base64,c2Vjb25k"

    def test_photo_buffer_does_not_leak_into_next_card(self):
        text = _card("FN:With", "PHOTO;ENCODING=b:QUJD") + _card("FN:Without")
        records = decode(text)
        assert records[0].photo is not None
        assert records[1].photo is None

    def test_photo_buffer_reset_after_dropped_block(self):
        text = _card("PHOTO;ENCODING=b:QUJD") + _card("FN:Clean")
        records = decode(text)
        assert [r.formatted_name for r in records] == ["Clean"]
        assert records[0].photo is None

    def test_inline_data_uri_photo(self):
        records = decode(_card("FN:V4", "PHOTO:data:image/png;base64,iVBORw0K"))
        assert records[0].photo == "data:image/png;base64,iVBORw0K"

    def test_noise_in_payload_passes_through(self):
        records = decode(_card("FN:Noise", "PHOTO;ENCODING=b:@@notbase64@@"))
        assert records[0].photo == "data:image/jpeg;base64,@@notbase64@@"


class TestEncode:
    """Serialization back to vCard 3.0."""

    def test_line_order_and_crlf(self):
        record = ContactRecord(
            formatted_name="Jane Doe",
            organization="Acme",
            title="CTO",
            telephones=[TypedEntry(kind="CELL", value="0912")],
            emails=[TypedEntry(kind="WORK", value="jane@acme.test")],
            note="a\nb",
        )
        assert encode([record]) == (
            "BEGIN:VCARD\r\n"
            "VERSION:3.0\r\n"
            "FN:Jane Doe\r\n"
            "ORG:Acme\r\n"
            "TITLE:CTO\r\n"
            "TEL;TYPE=CELL:0912\r\n"
            "EMAIL;TYPE=WORK:jane@acme.test\r\n"
            "NOTE:a\\nb\r\n"
            "END:VCARD\r\n"
        )

    def test_note_backslash_is_escaped(self):
        text = encode([ContactRecord(formatted_name="Path", note="C:\\new\nline")])
        assert "NOTE:C:\\\\new\\nline\r\n" in text

    def test_absent_fields_are_omitted(self):
        text = encode([ContactRecord(formatted_name="Bare")])
        assert text == "BEGIN:VCARD\r\nVERSION:3.0\r\nFN:Bare\r\nEND:VCARD\r\n"

    def test_default_kinds_when_blank(self):
        record = ContactRecord(
            formatted_name="Kinds",
            telephones=[TypedEntry(value="1")],
            emails=[TypedEntry(value="a@b.c")],
        )
        text = encode([record])
        assert "TEL;TYPE=VOICE:1\r\n" in text
        assert "EMAIL;TYPE=INTERNET:a@b.c\r\n" in text

    def test_blank_entries_are_omitted(self):
        record = ContactRecord(formatted_name="Skip")
        record.telephones.append(TypedEntry(kind="CELL", value=""))
        assert "TEL" not in encode([record])

    def test_photo_is_folded(self):
        payload = "A" * 100
        record = ContactRecord(
            formatted_name="Pic",
            photo=f"data:image/jpeg;base64,{payload}",
        )
        text = encode([record])
        assert (
            "PHOTO;ENCODING=b;TYPE=JPEG:" + "A" * 76 + "\r\n " + "A" * 24 + "\r\n"
        ) in text

    def test_photo_reference_is_not_written(self):
        record = ContactRecord(formatted_name="Ref", photo="cld:phone_book/abc")
        assert "PHOTO" not in encode([record])

    def test_empty_list(self):
        assert encode([]) == ""


class TestRoundTrip:
    """encode -> decode keeps every field."""

    def test_jane_round_trip(self):
        first = decode(JANE_VCF)[0]
        second = decode(encode([first]))[0]
        assert second.formatted_name == first.formatted_name
        assert second.telephones == first.telephones
        assert second.emails == first.emails
        assert second.note == first.note

    @pytest.mark.parametrize("note", [
        "single line",
        "multi\nline\nnote",
        "colon: inside; and semicolon",
        "C:\\new folder\\Notes",
    ])
    def test_full_record_round_trip(self, note):
        original = ContactRecord(
            formatted_name="Round Trip",
            organization="Org",
            title="Title",
            note=note,
            telephones=[
                TypedEntry(kind="CELL", value="+98 912 000 0000"),
                TypedEntry(kind="WORK", value="021-000"),
            ],
            emails=[TypedEntry(kind="INTERNET", value="rt@example.com")],
            photo="data:image/jpeg;base64," + "QUJD" * 60,
        )
        decoded = decode(encode([original]))[0]

        assert decoded.formatted_name == original.formatted_name
        assert decoded.organization == original.organization
        assert decoded.title == original.title
        assert decoded.note == original.note
        assert decoded.telephones == original.telephones
        assert decoded.emails == original.emails
        assert decoded.photo == original.photo


class TestDataUri:
    def test_split_data_uri(self):
        assert split_data_uri("data:image/png;base64,AAA") == ("image/png", "AAA")

    def test_split_rejects_non_base64(self):
        assert split_data_uri("data:text/plain,hello") is None
        assert split_data_uri("cld:phone_book/x") is None
        assert split_data_uri(None) is None
