from __future__ import annotations

import io
import zipfile
import zlib

import pytest
import requests

from src.services import gdelt_feed


def make_row(themes: str, locations: str, width: int = 11) -> str:
    cols = [""] * width
    cols[gdelt_feed.THEMES_COLUMN] = themes
    cols[gdelt_feed.LOCATIONS_COLUMN] = locations
    return "\t".join(cols)


def test_parse_row_extracts_themes_and_locations() -> None:
    line = make_row("MILITARY_ACTIVITY;TERROR", "Kyiv#x#UA#y#50.45#30.52")

    fact = gdelt_feed.parse_row(line)

    assert fact.themes == ["MILITARY_ACTIVITY", "TERROR"]
    assert fact.locations == [gdelt_feed.GeoMention(name="Kyiv", lat=50.45, lon=30.52, country="UA")]


def test_parse_row_drops_empty_theme_tags() -> None:
    fact = gdelt_feed.parse_row(make_row(";;PROTEST;;", ""))

    assert fact.themes == ["PROTEST"]
    assert fact.locations == []


def test_bad_location_tokens_are_dropped_not_the_row() -> None:
    tokens = ";".join(
        [
            "#x#US#y#40.7#-74.0",  # no name
            "Paris#x#FR#y#abc#2.35",  # bad latitude
            "Nowhere#x#ZZ",  # missing coordinates
            "Lima#x#PE#y#nan#-77.0",  # non-finite
            "Berlin#x#GM#y#52.52#13.40",
        ]
    )

    fact = gdelt_feed.parse_row(make_row("ELECTION", tokens))

    assert [mention.name for mention in fact.locations] == ["Berlin"]


def test_short_rows_yield_partial_facts() -> None:
    facts = list(gdelt_feed.iter_event_facts("only\tthree\tcolumns\n\nfoo"))

    assert len(facts) == 3
    assert all(fact.themes == [] and fact.locations == [] for fact in facts)


def test_themes_without_geo_column() -> None:
    line = "\t".join(["a", "b", "c", "d", "WB_ECONOMY"])

    fact = gdelt_feed.parse_row(line)

    assert fact.themes == ["WB_ECONOMY"]
    assert fact.locations == []


def test_iter_event_facts_handles_empty_text() -> None:
    assert list(gdelt_feed.iter_event_facts("")) == []


def test_leading_empty_columns_of_first_row_are_kept() -> None:
    text = "\t\t\t\tMILITARY_ACTIVITY;TERROR\t\t\t\tKyiv#1#UA#x#50.45#30.52"

    facts = list(gdelt_feed.iter_event_facts(text))

    assert len(facts) == 1
    assert facts[0].themes == ["MILITARY_ACTIVITY", "TERROR"]
    assert facts[0].locations == [gdelt_feed.GeoMention(name="Kyiv", lat=50.45, lon=30.52, country="UA")]


def test_rows_split_on_newline_only() -> None:
    row = make_row("TERROR", "Kyiv#x#UA#y#50.45#30.52").split("\t")
    row[3] = "Kyiv\u2028Independent\x0creport"
    second = make_row("FLOOD", "Dhaka#x#BG#y#23.8#90.4")
    text = "\t".join(row) + "\r\n" + second + "\r\n"

    facts = list(gdelt_feed.iter_event_facts(text))

    assert [fact.themes for fact in facts] == [["TERROR"], ["FLOOD"]]
    assert [fact.locations[0].name for fact in facts] == ["Kyiv", "Dhaka"]


def test_country_is_optional() -> None:
    mention = gdelt_feed.parse_location_token("Atlantis#x##y#1.5#2.5")

    assert mention == gdelt_feed.GeoMention(name="Atlantis", lat=1.5, lon=2.5, country="")


class FakeResponse:
    def __init__(self, content: bytes, status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def test_fetch_text_decodes_plain_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    body = make_row("TERROR", "Kyiv#x#UA#y#50.45#30.52").encode("utf-8")
    monkeypatch.setattr(gdelt_feed.requests, "get", lambda url, timeout: FakeResponse(body))

    text = gdelt_feed.GkgFeedSource("http://example.com/feed.csv").fetch_text()
    facts = list(gdelt_feed.iter_event_facts(text))

    assert facts[0].locations[0].name == "Kyiv"


def test_fetch_text_unpacks_zip_archives(monkeypatch: pytest.MonkeyPatch) -> None:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("20250101.gkg.csv", make_row("FLOOD", "Dhaka#x#BG#y#23.8#90.4"))
    monkeypatch.setattr(gdelt_feed.requests, "get", lambda url, timeout: FakeResponse(buffer.getvalue()))

    text = gdelt_feed.GkgFeedSource("http://example.com/20250101.gkg.csv.zip").fetch_text()

    assert "Dhaka" in text


def test_fetch_text_wraps_transport_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(url: str, timeout: int) -> FakeResponse:
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(gdelt_feed.requests, "get", boom)

    with pytest.raises(gdelt_feed.FeedFetchError):
        gdelt_feed.GkgFeedSource().fetch_text()


def test_fetch_text_raises_on_http_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(gdelt_feed.requests, "get", lambda url, timeout: FakeResponse(b"", status_code=503))

    with pytest.raises(gdelt_feed.FeedFetchError):
        gdelt_feed.GkgFeedSource().fetch_text()


def test_fetch_text_wraps_corrupt_archive_members(monkeypatch: pytest.MonkeyPatch) -> None:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("20250101.gkg.csv", make_row("FLOOD", "Dhaka#x#BG#y#23.8#90.4"))

    def broken_read(self, name):
        raise zlib.error("Error -3 while decompressing data: invalid block type")

    monkeypatch.setattr(gdelt_feed.zipfile.ZipFile, "read", broken_read)
    monkeypatch.setattr(gdelt_feed.requests, "get", lambda url, timeout: FakeResponse(buffer.getvalue()))

    with pytest.raises(gdelt_feed.FeedFetchError):
        gdelt_feed.GkgFeedSource("http://example.com/20250101.gkg.csv.zip").fetch_text()
