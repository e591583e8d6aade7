"""
Action dispatch for scanned QR content.

The dispatcher never touches the desktop directly: every side effect goes
through an `Effects` object, and platform differences (Wi-Fi / maps deep
links) come from an injected `PlatformCapabilities`.
"""

import logging
import re
import sys
from dataclasses import dataclass
from urllib.parse import quote

import qr_config
from qr_classify import ContentKind, classify, parse_geo, parse_wifi
from qr_payloads import uri_component

logger = logging.getLogger(__name__)

VCARD_FILENAME, VCARD_MEDIA_TYPE = "contact.vcf", "text/vcard"
EVENT_FILENAME, EVENT_MEDIA_TYPE = "event.ics", "text/calendar"

RAW_KINDS = frozenset({ContentKind.VCARD, ContentKind.VEVENT})


class DispatchError(Exception):
    """Content matched a kind but could not be acted on."""


def ensure_http(url: str) -> str:
    if not url:
        return ""
    if re.match(r"^[a-z][a-z0-9+.-]*://", url, re.I):
        return url
    return "https://" + url


# ---------------- Platform capabilities ----------------
@dataclass(frozen=True)
class PlatformCapabilities:
    name: str = "desktop"
    wifi_link_template: str | None = None  # {ssid} {password} {security}
    maps_link_template: str | None = None  # {lat} {lng}

    @property
    def supports_wifi_deep_link(self) -> bool:
        return bool(self.wifi_link_template)

    @property
    def supports_maps_deep_link(self) -> bool:
        return bool(self.maps_link_template)

    @classmethod
    def for_platform(cls, name: str) -> "PlatformCapabilities":
        key = (name or "").strip().lower()
        key = {"macos": "darwin", "mac": "darwin", "iphone": "ios", "ipad": "ios"}.get(key, key)
        return PLATFORMS.get(key, PLATFORMS["desktop"])

    @classmethod
    def from_user_agent(cls, user_agent: str) -> "PlatformCapabilities":
        ua = user_agent or ""
        if re.search(r"iPhone|iPad|iPod", ua):
            return PLATFORMS["ios"]
        if re.search(r"Android", ua):
            return PLATFORMS["android"]
        return PLATFORMS["desktop"]

    @classmethod
    def detect(cls) -> "PlatformCapabilities":
        if qr_config.PLATFORM:
            return cls.for_platform(qr_config.PLATFORM)
        return cls.for_platform("darwin" if sys.platform == "darwin" else "desktop")


PLATFORMS = {
    "android": PlatformCapabilities(
        name="android",
        wifi_link_template="intent:#Intent;action=android.settings.WIFI_SETTINGS;S.ssid={ssid};S.password={password};end",
        maps_link_template="geo:{lat},{lng}?q={lat},{lng}",
    ),
    "ios": PlatformCapabilities(
        name="ios",
        wifi_link_template="App-Prefs:root=WIFI&ssid={ssid}&password={password}",
        maps_link_template="maps://?q={lat},{lng}",
    ),
    "darwin": PlatformCapabilities(name="darwin", maps_link_template="maps://?q={lat},{lng}"),
    "desktop": PlatformCapabilities(name="desktop"),
}


# ---------------- Effects ----------------
@dataclass(frozen=True)
class Download:
    filename: str
    media_type: str
    content: bytes


class Effects:
    """Side effects the dispatcher may request. Subclasses talk to the OS/UI."""

    def open_url(self, url: str) -> None:
        raise NotImplementedError

    def open_uri(self, uri: str) -> None:
        raise NotImplementedError

    def download(self, item: Download) -> None:
        raise NotImplementedError

    def show_message(self, title: str, text: str) -> None:
        raise NotImplementedError


class RecordingEffects(Effects):
    """Keeps requested effects in memory (headless runs, tests)."""

    def __init__(self):
        self.calls: list[tuple[str, object]] = []

    def open_url(self, url):
        self.calls.append(("open_url", url))

    def open_uri(self, uri):
        self.calls.append(("open_uri", uri))

    def download(self, item):
        self.calls.append(("download", item))

    def show_message(self, title, text):
        self.calls.append(("show_message", (title, text)))


@dataclass
class DispatchOutcome:
    kind: ContentKind
    action: str
    target: object = None
    ok: bool = True
    detail: str = ""


# ---------------- Dispatcher ----------------
class Dispatcher:
    def __init__(self, effects: Effects, capabilities: PlatformCapabilities | None = None,
                 maps_web_url: str | None = None):
        self.effects = effects
        self.capabilities = capabilities or PlatformCapabilities.detect()
        self.maps_web_url = maps_web_url or qr_config.MAPS_WEB_URL
        self._handlers = {
            ContentKind.WIFI_CONFIG: self._wifi,
            ContentKind.MAILTO: self._scheme,
            ContentKind.SMSTO: self._sms,
            ContentKind.TELTO: self._scheme,
            ContentKind.VCARD: self._vcard,
            ContentKind.GEO_LOCATION: self._geo,
            ContentKind.HTTP_URL: self._url,
            ContentKind.KNOWN_SOCIAL_URL: self._url,
            ContentKind.VEVENT: self._event,
        }

    def handle(self, text: str) -> DispatchOutcome:
        """Classify and dispatch in one step."""
        return self.dispatch(classify(text), text)

    def dispatch(self, kind, text: str) -> DispatchOutcome:
        """Run the action for `kind`. Failures are logged, never raised."""
        try:
            kind = ContentKind(kind)
            s = (text or "").strip()
            handler = self._handlers.get(kind)
            if handler is None:
                logger.info("Unclassified content retained: %r", s[:200])
                return DispatchOutcome(kind, "retain", s)
            # vCard and event downloads keep the scanned bytes, line endings included
            outcome = handler(kind, (text or "") if kind in RAW_KINDS else s)
            logger.info("Dispatched %s via %s", kind.value, outcome.action)
            return outcome
        except Exception as e:
            logger.warning("Dispatch of %s failed: %s", getattr(kind, "value", kind), e)
            return DispatchOutcome(kind, "failed", text, ok=False, detail=str(e))

    # ---- per-kind actions
    def _wifi(self, kind, s):
        record = parse_wifi(s)
        if record is None:
            raise DispatchError("malformed Wi-Fi payload")
        caps = self.capabilities
        if caps.supports_wifi_deep_link:
            link = caps.wifi_link_template.format(
                ssid=uri_component(record.ssid),
                password=uri_component(record.password),
                security=uri_component(record.security),
            )
            self.effects.open_uri(link)
            return DispatchOutcome(kind, "open_uri", link)
        text = f"Network: {record.ssid}\nSecurity: {record.security or 'nopass'}\nPassword: {record.password}"
        self.effects.show_message("Wi-Fi Network", text)
        return DispatchOutcome(kind, "show_message", text)

    def _scheme(self, kind, s):
        self.effects.open_uri(s)
        return DispatchOutcome(kind, "open_uri", s)

    def _sms(self, kind, s):
        if s.upper().startswith("SMSTO:"):
            number, _, message = s[6:].partition(":")
            s = f"sms:{number}"
            if message:
                s += f"?body={uri_component(message)}"
        return self._scheme(kind, s)

    def _vcard(self, kind, s):
        item = Download(VCARD_FILENAME, VCARD_MEDIA_TYPE, s.encode("utf-8"))
        self.effects.download(item)
        return DispatchOutcome(kind, "download", item)

    def _event(self, kind, s):
        item = Download(EVENT_FILENAME, EVENT_MEDIA_TYPE, s.encode("utf-8"))
        self.effects.download(item)
        return DispatchOutcome(kind, "download", item)

    def _geo(self, kind, s):
        coords = parse_geo(s)
        if coords is None:
            raise DispatchError("malformed geo payload")
        lat, lng = quote(coords[0]), quote(coords[1])
        template = self.capabilities.maps_link_template or self.maps_web_url
        link = template.format(lat=lat, lng=lng)
        if self.capabilities.supports_maps_deep_link:
            self.effects.open_uri(link)
            return DispatchOutcome(kind, "open_uri", link)
        self.effects.open_url(link)
        return DispatchOutcome(kind, "open_url", link)

    def _url(self, kind, s):
        url = ensure_http(s) if kind is ContentKind.KNOWN_SOCIAL_URL else s
        self.effects.open_url(url)
        return DispatchOutcome(kind, "open_url", url)
