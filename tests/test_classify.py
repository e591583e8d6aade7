import pytest

from qr_classify import RULES, ContentKind, classify, is_absolute_url, parse_geo, parse_wifi
from qr_payloads import WifiRecord, encode_wifi


@pytest.mark.parametrize("text, kind", [
    ("WIFI:T:WPA;S:x;P:y;;", ContentKind.WIFI_CONFIG),
    ("mailto:a@b.com?subject=Hi", ContentKind.MAILTO),
    ("sms:+1555?body=hi", ContentKind.SMSTO),
    ("SMSTO:+1555:hi", ContentKind.SMSTO),
    ("tel:+1555", ContentKind.TELTO),
    ("BEGIN:VCARD\nVERSION:3.0\nFN:Ada\nEND:VCARD", ContentKind.VCARD),
    ("geo:48.8584,2.2945", ContentKind.GEO_LOCATION),
    ("geo:-33.86,151.21?q=Opera%20House", ContentKind.GEO_LOCATION),
    ("https://instagram.com/foo", ContentKind.KNOWN_SOCIAL_URL),
    ("linkedin.com/in/ada", ContentKind.KNOWN_SOCIAL_URL),
    ("https://example.com/page", ContentKind.HTTP_URL),
    ("http://example.com", ContentKind.HTTP_URL),
    ("BEGIN:VEVENT\nSUMMARY:x\nEND:VEVENT", ContentKind.VEVENT),
    ("BEGIN:VCALENDAR\nVERSION:2.0\nBEGIN:VEVENT\nEND:VEVENT\nEND:VCALENDAR", ContentKind.VEVENT),
    ("ftp://files.example.com/a.txt", ContentKind.HTTP_URL),
    ("not a url at all", ContentKind.UNCLASSIFIED),
])
def test_classify(text, kind):
    assert classify(text) == kind


def test_prefixes_ignore_case_and_surrounding_whitespace():
    assert classify("  wifi:T:WPA;S:x;;\n") == ContentKind.WIFI_CONFIG
    assert classify("MAILTO:a@b.com") == ContentKind.MAILTO


def test_malformed_geo_is_not_a_location():
    assert classify("geo:somewhere") == ContentKind.UNCLASSIFIED


def test_social_rule_runs_before_generic_http():
    kinds = [kind for _, kind in RULES]
    assert kinds.index(ContentKind.KNOWN_SOCIAL_URL) < kinds.index(ContentKind.HTTP_URL)


def test_first_matching_rule_wins():
    # a vCard mentioning a social profile is still a vCard
    text = "BEGIN:VCARD\nURL:https://twitter.com/ada\nEND:VCARD"
    assert classify(text) == ContentKind.VCARD


@pytest.mark.parametrize("text", [None, "", "   ", "\x00\x01", "geo:", "WIFI", "::::", "http://[::1", "é" * 500])
def test_classify_is_total(text):
    assert isinstance(classify(text), ContentKind)


def test_absolute_url_is_strict():
    assert is_absolute_url("ftp://host/x")
    assert not is_absolute_url("note: remember milk")
    assert not is_absolute_url("urn:isbn:123")
    assert not is_absolute_url("http://[::1")


@pytest.mark.parametrize("record", [
    WifiRecord("Home", "p@ss", "WPA"),
    WifiRecord("Cafe", "", "nopass"),
    WifiRecord('we;ird:"net"', "back\\slash,semi;", "WEP", hidden=True),
])
def test_wifi_round_trip(record):
    assert parse_wifi(encode_wifi(record)) == record


def test_parse_wifi_field_order_is_free():
    assert parse_wifi("WIFI:S:Lab;T:WEP;P:pw;;") == WifiRecord("Lab", "pw", "WEP")


def test_parse_wifi_requires_ssid():
    assert parse_wifi("WIFI:T:WPA;P:pw;;") is None
    assert parse_wifi("https://example.com") is None


def test_parse_geo():
    assert parse_geo("geo:48.8584,2.2945") == ("48.8584", "2.2945")
    assert parse_geo("geo:-33.86,151.21,10?q=x") == ("-33.86", "151.21")
    assert parse_geo("geo:abc,def") is None
    assert parse_geo("geo:12") is None
    assert parse_geo("geo:37.786971,-122.399677;u=35") == ("37.786971", "-122.399677")
    assert parse_geo("geo:48.2,16.3;crs=wgs84;u=40?q=Wien") == ("48.2", "16.3")
