# File: tests/test_normalize.py
from adstxt_manager.models import Relationship
from adstxt_manager.normalize import normalize_entries
from adstxt_manager.parser import parse_ads_txt


def test_duplicates_and_invalid_lines_are_dropped():
    text = (
        "Google.com, pub-1, DIRECT\n"
        "google.com, pub-1, direct\n"
        "google.com, pub-1, RESELLER\n"
        "google.com, pub-2, DIRECT\n"
        "broken\n"
    )
    records, variables = normalize_entries(parse_ads_txt(text))

    assert [(r.domain, r.account_id, r.relationship) for r in records] == [
        ("google.com", "pub-1", Relationship.DIRECT),
        ("google.com", "pub-1", Relationship.RESELLER),
        ("google.com", "pub-2", Relationship.DIRECT),
    ]
    assert variables == []


def test_certification_id_taken_from_later_duplicate():
    text = "openx.com, 123, DIRECT\nopenx.com, 123, DIRECT, 6a698e2ec38604c6\n"
    records, _ = normalize_entries(parse_ads_txt(text))
    assert len(records) == 1
    assert records[0].certification_authority_id == "6a698e2ec38604c6"
    assert records[0].line_number == 1


def test_account_id_is_case_sensitive():
    records, _ = normalize_entries(parse_ads_txt("ssp.test, ABC, DIRECT\nssp.test, abc, DIRECT\n"))
    assert [r.account_id for r in records] == ["ABC", "abc"]


def test_variables_deduplicated_by_type_and_value():
    text = "contact=a@b.test\nCONTACT=a@b.test\nCONTACT=c@d.test\n"
    _, variables = normalize_entries(parse_ads_txt(text))
    assert [(v.variable_type, v.value) for v in variables] == [
        ("CONTACT", "a@b.test"),
        ("CONTACT", "c@d.test"),
    ]
