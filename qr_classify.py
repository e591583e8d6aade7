"""Classify decoded QR text into a content kind with an ordered rule table."""

import re
from enum import Enum
from urllib.parse import urlsplit

from qr_payloads import SOCIAL_PROFILES, WifiRecord


class ContentKind(str, Enum):
    WIFI_CONFIG = "wifi"
    MAILTO = "mailto"
    SMSTO = "sms"
    TELTO = "tel"
    VCARD = "vcard"
    GEO_LOCATION = "geo"
    HTTP_URL = "url"
    VEVENT = "event"
    KNOWN_SOCIAL_URL = "social"
    UNCLASSIFIED = "text"


LABELS = {
    ContentKind.WIFI_CONFIG: "Wi-Fi",
    ContentKind.MAILTO: "Email",
    ContentKind.SMSTO: "SMS",
    ContentKind.TELTO: "Phone",
    ContentKind.VCARD: "vCard",
    ContentKind.GEO_LOCATION: "Location",
    ContentKind.HTTP_URL: "URL",
    ContentKind.VEVENT: "Event",
    ContentKind.KNOWN_SOCIAL_URL: "Social",
    ContentKind.UNCLASSIFIED: "Text",
}

SOCIAL_DOMAINS = tuple(domain for domain, _ in SOCIAL_PROFILES.values())

GEO_RE = re.compile(r"^geo:([-+]?\d+(?:\.\d+)?),([-+]?\d+(?:\.\d+)?)", re.I)
_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*$", re.I)


def _prefix(*prefixes: str):
    lowered = tuple(p.lower() for p in prefixes)
    return lambda s: s.lower().startswith(lowered)


def _is_vevent(s: str) -> bool:
    up = s.upper()
    return up.startswith("BEGIN:VEVENT") or (up.startswith("BEGIN:VCALENDAR") and "BEGIN:VEVENT" in up)


def is_absolute_url(s: str) -> bool:
    """Strict check: scheme and network location, no whitespace."""
    if not s or any(c.isspace() for c in s):
        return False
    try:
        parts = urlsplit(s)
    except ValueError:
        return False
    return bool(_SCHEME_RE.match(parts.scheme) and parts.netloc)


# first match wins
RULES = (
    (_prefix("WIFI:"), ContentKind.WIFI_CONFIG),
    (_prefix("mailto:"), ContentKind.MAILTO),
    (_prefix("sms:", "SMSTO:"), ContentKind.SMSTO),
    (_prefix("tel:"), ContentKind.TELTO),
    (_prefix("BEGIN:VCARD"), ContentKind.VCARD),
    (lambda s: GEO_RE.match(s) is not None, ContentKind.GEO_LOCATION),
    (lambda s: any(d in s.lower() for d in SOCIAL_DOMAINS), ContentKind.KNOWN_SOCIAL_URL),
    (_prefix("http://", "https://"), ContentKind.HTTP_URL),
    (_is_vevent, ContentKind.VEVENT),
)


def classify(text: str | None) -> ContentKind:
    s = (text or "").strip()
    if not s:
        return ContentKind.UNCLASSIFIED
    for test, kind in RULES:
        if test(s):
            return kind
    if is_absolute_url(s):
        return ContentKind.HTTP_URL
    return ContentKind.UNCLASSIFIED


# ---------------- Extraction ----------------
def _split_unescaped(s: str, sep: str) -> list[str]:
    parts, cur, escaped = [], [], False
    for ch in s:
        if escaped:
            cur.append("\\" + ch)
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == sep:
            parts.append("".join(cur))
            cur = []
        else:
            cur.append(ch)
    if escaped:
        cur.append("\\")
    parts.append("".join(cur))
    return parts


def _unescape(s: str) -> str:
    return re.sub(r"\\(.)", r"\1", s)


def parse_wifi(text: str) -> WifiRecord | None:
    """Extract T/S/P/H from a WIFI: payload; None when there is no S field."""
    s = (text or "").strip()
    if not s.upper().startswith("WIFI:"):
        return None
    values = {}
    for token in _split_unescaped(s[5:], ";"):
        key, sep, value = token.partition(":")
        if sep and key:
            values.setdefault(key.upper(), _unescape(value))
    if "S" not in values:
        return None
    return WifiRecord(
        ssid=values["S"],
        password=values.get("P", ""),
        security=values.get("T", ""),
        hidden=values.get("H", "").lower() == "true",
    )


def parse_geo(text: str) -> tuple[str, str] | None:
    """Latitude/longitude from a geo: URI; `;crs=`/`;u=` params and `?q=` are ignored."""
    m = GEO_RE.match((text or "").strip())
    if m is None:
        return None
    return m.group(1), m.group(2)
