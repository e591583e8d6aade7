import logging

import pytest

from qr_classify import ContentKind
from qr_dispatch import (
    Dispatcher, Download, Effects, PlatformCapabilities, RecordingEffects, ensure_http,
)

VCARD = "BEGIN:VCARD\nVERSION:3.0\nFN:Ada Lovelace\nEND:VCARD"
VEVENT = "BEGIN:VEVENT\nSUMMARY:Launch\nEND:VEVENT"


@pytest.fixture
def effects():
    return RecordingEffects()


@pytest.fixture
def desktop(effects):
    return Dispatcher(effects, PlatformCapabilities.for_platform("desktop"))


class ExplodingEffects(Effects):
    def open_url(self, url):
        raise RuntimeError("popup blocked")

    def open_uri(self, uri):
        raise RuntimeError("no handler")

    def download(self, item):
        raise OSError("disk full")

    def show_message(self, title, text):
        raise RuntimeError("no display")


def test_wifi_shows_fields_without_deep_link(desktop, effects):
    outcome = desktop.dispatch(ContentKind.WIFI_CONFIG, "WIFI:T:WPA;S:Home;P:p@ss;;")
    assert outcome.ok and outcome.action == "show_message"
    (name, (title, text)), = effects.calls
    assert name == "show_message"
    assert "Network: Home" in text and "Security: WPA" in text and "Password: p@ss" in text


def test_wifi_uses_platform_deep_link(effects):
    dispatcher = Dispatcher(effects, PlatformCapabilities.for_platform("android"))
    outcome = dispatcher.dispatch(ContentKind.WIFI_CONFIG, "WIFI:T:WPA;S:My Net;P:a&b;;")
    assert outcome.action == "open_uri"
    link = effects.calls[0][1]
    assert "S.ssid=My%20Net" in link and "S.password=a%26b" in link


def test_malformed_wifi_is_absorbed(desktop, effects, caplog):
    with caplog.at_level(logging.WARNING, logger="qr_dispatch"):
        outcome = desktop.dispatch(ContentKind.WIFI_CONFIG, "WIFI:garbage")
    assert not outcome.ok
    assert effects.calls == []
    assert "malformed Wi-Fi payload" in caplog.text


@pytest.mark.parametrize("kind, text", [
    (ContentKind.MAILTO, "mailto:a@b.com?subject=Hi"),
    (ContentKind.SMSTO, "sms:+1555?body=hi"),
    (ContentKind.TELTO, "tel:+1555"),
])
def test_schemes_go_to_default_handler(desktop, effects, kind, text):
    outcome = desktop.dispatch(kind, text)
    assert outcome.ok
    assert effects.calls == [("open_uri", text)]


def test_legacy_smsto_is_rewritten(desktop, effects):
    desktop.dispatch(ContentKind.SMSTO, "SMSTO:+1555:See you soon")
    assert effects.calls == [("open_uri", "sms:+1555?body=See%20you%20soon")]


def test_vcard_download(desktop, effects):
    outcome = desktop.dispatch(ContentKind.VCARD, VCARD)
    assert outcome.action == "download"
    assert effects.calls == [("download", Download("contact.vcf", "text/vcard", VCARD.encode()))]


def test_vcard_download_keeps_scanned_text(desktop, effects):
    scanned = "BEGIN:VCARD\r\nVERSION:3.0\r\nFN:Ada Lovelace\r\nEND:VCARD\r\n"
    desktop.handle(scanned)
    [(_, item)] = effects.calls
    assert item.content == scanned.encode()
    assert item.content.endswith(b"END:VCARD\r\n")


def test_event_download_keeps_scanned_text(desktop, effects):
    scanned = "BEGIN:VCALENDAR\r\nBEGIN:VEVENT\r\nSUMMARY:Launch\r\nEND:VEVENT\r\nEND:VCALENDAR\r\n"
    desktop.dispatch(ContentKind.VEVENT, scanned)
    assert effects.calls == [("download", Download("event.ics", "text/calendar", scanned.encode()))]


def test_vcard_dispatch_is_idempotent(desktop, effects):
    desktop.dispatch(ContentKind.VCARD, VCARD)
    desktop.dispatch(ContentKind.VCARD, VCARD)
    first, second = (item for _, item in effects.calls)
    assert first == second
    assert first is not second


def test_event_download(desktop, effects):
    desktop.dispatch(ContentKind.VEVENT, VEVENT)
    assert effects.calls == [("download", Download("event.ics", "text/calendar", VEVENT.encode()))]


def test_geo_web_fallback(desktop, effects):
    outcome = desktop.dispatch(ContentKind.GEO_LOCATION, "geo:48.8584,2.2945?q=Eiffel")
    assert outcome.action == "open_url"
    assert effects.calls == [("open_url", "https://www.google.com/maps?q=48.8584,2.2945")]


def test_geo_platform_maps(effects):
    dispatcher = Dispatcher(effects, PlatformCapabilities.for_platform("ios"))
    dispatcher.dispatch(ContentKind.GEO_LOCATION, "geo:1.5,-2.25")
    assert effects.calls == [("open_uri", "maps://?q=1.5,-2.25")]


def test_geo_with_uri_parameters(desktop, effects):
    text = "geo:37.786971,-122.399677;u=35"
    outcome = desktop.handle(text)
    assert outcome.kind is ContentKind.GEO_LOCATION and outcome.ok
    assert effects.calls == [("open_url", "https://www.google.com/maps?q=37.786971,-122.399677")]


def test_malformed_geo_is_absorbed(desktop, effects):
    outcome = desktop.dispatch(ContentKind.GEO_LOCATION, "geo:nowhere")
    assert not outcome.ok and effects.calls == []


def test_urls_open_in_browser(desktop, effects):
    desktop.dispatch(ContentKind.HTTP_URL, "https://example.com")
    desktop.dispatch(ContentKind.KNOWN_SOCIAL_URL, "instagram.com/ada")
    assert effects.calls == [
        ("open_url", "https://example.com"),
        ("open_url", "https://instagram.com/ada"),
    ]


def test_unclassified_has_no_effect(desktop, effects):
    outcome = desktop.dispatch(ContentKind.UNCLASSIFIED, "  just some text ")
    assert outcome.action == "retain"
    assert outcome.target == "just some text"
    assert effects.calls == []


def test_handle_classifies_first(desktop, effects):
    assert desktop.handle("tel:+1555").kind == ContentKind.TELTO
    assert effects.calls == [("open_uri", "tel:+1555")]


@pytest.mark.parametrize("kind, text", [
    (ContentKind.WIFI_CONFIG, "WIFI:T:WPA;S:x;P:y;;"),
    (ContentKind.MAILTO, "mailto:a@b.com"),
    (ContentKind.VCARD, VCARD),
    (ContentKind.GEO_LOCATION, "geo:1,2"),
    (ContentKind.HTTP_URL, "https://example.com"),
    (ContentKind.VEVENT, VEVENT),
    ("bogus-kind", "whatever"),
])
def test_effect_failures_never_escape(kind, text):
    dispatcher = Dispatcher(ExplodingEffects(), PlatformCapabilities.for_platform("desktop"))
    outcome = dispatcher.dispatch(kind, text)
    assert outcome.ok is False
    assert outcome.action == "failed"


def test_capabilities_from_user_agent():
    iphone = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)"
    android = "Mozilla/5.0 (Linux; Android 14; Pixel 8)"
    assert PlatformCapabilities.from_user_agent(iphone).name == "ios"
    assert PlatformCapabilities.from_user_agent(android).supports_wifi_deep_link
    desktop = PlatformCapabilities.from_user_agent("Mozilla/5.0 (X11; Linux x86_64)")
    assert not desktop.supports_wifi_deep_link and not desktop.supports_maps_deep_link


def test_capabilities_aliases():
    assert PlatformCapabilities.for_platform("macOS").supports_maps_deep_link
    assert PlatformCapabilities.for_platform("commodore").name == "desktop"


def test_ensure_http():
    assert ensure_http("example.com") == "https://example.com"
    assert ensure_http("http://example.com") == "http://example.com"
    assert ensure_http("") == ""
