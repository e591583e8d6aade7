"""
Payload encoders for QR Studio.

Each encoder turns one structured record into the text that ends up inside the
QR symbol. Encoders never raise: missing values collapse to empty strings.
`build()` picks the encoder for the active payload kind.
"""

import re
from dataclasses import dataclass, field, fields
from enum import Enum
from urllib.parse import quote


# ---------------- Kinds & records ----------------
class PayloadKind(str, Enum):
    URL = "url"
    WIFI = "wifi"
    CONTACT = "vcard"
    EMAIL = "email"
    SMS = "sms"
    SOCIAL = "social"
    PHONE = "tel"
    GEO = "geo"
    EVENT = "event"


class WifiSecurity(str, Enum):
    WPA = "WPA"
    WEP = "WEP"
    NONE = "nopass"


@dataclass
class WifiRecord:
    ssid: str = ""
    password: str = ""
    security: str = WifiSecurity.WPA.value
    hidden: bool = False

    _content = ("ssid", "password")


@dataclass
class ContactRecord:
    first_name: str = ""
    last_name: str = ""
    company: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""


@dataclass
class EmailRecord:
    to: str = ""
    subject: str = ""
    body: str = ""


@dataclass
class SmsRecord:
    phone: str = ""
    message: str = ""


@dataclass
class SocialRecord:
    platform: str = "instagram"
    username: str = ""

    _content = ("username",)


@dataclass
class PhoneRecord:
    phone: str = ""


@dataclass
class GeoRecord:
    latitude: str = ""
    longitude: str = ""
    label: str = ""


@dataclass
class EventRecord:
    title: str = ""
    location: str = ""
    start: str = ""  # YYYYMMDD or YYYYMMDDTHHMMSS
    end: str = ""
    description: str = ""


@dataclass
class PayloadRecords:
    """Form state: one record per kind, only the active one is read."""
    text: str = ""
    wifi: WifiRecord = field(default_factory=WifiRecord)
    contact: ContactRecord = field(default_factory=ContactRecord)
    email: EmailRecord = field(default_factory=EmailRecord)
    sms: SmsRecord = field(default_factory=SmsRecord)
    social: SocialRecord = field(default_factory=SocialRecord)
    phone: PhoneRecord = field(default_factory=PhoneRecord)
    geo: GeoRecord = field(default_factory=GeoRecord)
    event: EventRecord = field(default_factory=EventRecord)


def is_blank_record(record) -> bool:
    """True when every content field is empty after trimming.

    Selector fields (Wi-Fi security, social platform) are not content.
    """
    names = getattr(record, "_content", None) or [f.name for f in fields(record)]
    return not any(str(getattr(record, n) or "").strip() for n in names)


def is_blank_payload(payload: str | None) -> bool:
    return not (payload or "").strip()


# ---------------- Escapers ----------------
def _wifi_escape(s: str) -> str:
    if s is None:
        return ""
    s = s.replace("\\", r"\\")
    return re.sub(r'([;,:"])', r'\\\1', s)


def _vc_escape(s: str) -> str:
    if s is None:
        return ""
    return (
        s.replace("\\", r"\\")
         .replace("\n", r"\n")
         .replace(";", r"\;")
         .replace(",", r"\,")
    )


def _ics_escape(s: str) -> str:
    if s is None:
        return ""
    return (
        s.replace("\\", r"\\")
         .replace("\n", r"\n")
         .replace(",", r"\,")
         .replace(";", r"\;")
    )


def uri_component(s: str) -> str:
    """Percent-encode like JavaScript's encodeURIComponent."""
    return quote(s or "", safe="!~*'()")


def _ensure_z(ts: str) -> str:
    if not ts:
        return ""
    if ts.endswith("Z"):
        return ts
    # allow YYYYMMDD too
    if re.fullmatch(r"\d{8}", ts):
        return ts  # all-day date
    return ts + "Z"


# ---------------- Encoders ----------------
SOCIAL_PROFILES = {
    "instagram": ("instagram.com", ""),
    "twitter": ("twitter.com", ""),
    "facebook": ("facebook.com", ""),
    "linkedin": ("linkedin.com", "in/"),
    "tiktok": ("tiktok.com", "@"),
    "youtube": ("youtube.com", "@"),
}


def encode_url(text: str) -> str:
    return text or ""


def encode_wifi(r: WifiRecord) -> str:
    security = r.security.value if isinstance(r.security, Enum) else (r.security or "")
    payload = f"WIFI:T:{security};S:{_wifi_escape(r.ssid or '')};P:{_wifi_escape(r.password or '')};"
    if r.hidden:
        payload += "H:true;"
    return payload + ";"


def encode_contact(r: ContactRecord) -> str:
    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"FN:{_vc_escape(r.first_name or '')} {_vc_escape(r.last_name or '')}",
        f"ORG:{_vc_escape(r.company or '')}",
        f"TEL:{_vc_escape(r.phone or '')}",
        f"EMAIL:{_vc_escape(r.email or '')}",
        f"ADR:{_vc_escape(r.address or '')}",
        "END:VCARD",
    ]
    return "\n".join(lines)


def encode_email(r: EmailRecord) -> str:
    return f"mailto:{r.to or ''}?subject={uri_component(r.subject)}&body={uri_component(r.body)}"


def encode_sms(r: SmsRecord) -> str:
    return f"sms:{r.phone or ''}?body={uri_component(r.message)}"


def encode_social(r: SocialRecord) -> str:
    entry = SOCIAL_PROFILES.get((r.platform or "").lower())
    if entry is None:
        return ""
    domain, prefix = entry
    return f"https://{domain}/{prefix}{r.username or ''}"


def encode_phone(r: PhoneRecord) -> str:
    return f"tel:{(r.phone or '').strip()}"


def encode_geo(r: GeoRecord) -> str:
    payload = f"geo:{(r.latitude or '').strip()},{(r.longitude or '').strip()}"
    if (r.label or "").strip():
        payload += f"?q={uri_component(r.label.strip())}"
    return payload


def encode_event(r: EventRecord) -> str:
    start_raw = (r.start or "").strip()
    end_raw = (r.end or "").strip()
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "BEGIN:VEVENT",
        f"SUMMARY:{_ics_escape((r.title or '').strip())}",
    ]
    if start_raw:
        lines.append(f"DTSTART:{_ensure_z(start_raw)}")
    if end_raw:
        lines.append(f"DTEND:{_ensure_z(end_raw)}")
    if (r.location or "").strip():
        lines.append(f"LOCATION:{_ics_escape(r.location.strip())}")
    desc = (r.description or "").strip()
    if desc:
        lines.append("DESCRIPTION:" + _ics_escape(desc))
    lines += ["END:VEVENT", "END:VCALENDAR"]
    return "\n".join(lines)


# kind -> (attribute on PayloadRecords, encoder)
ENCODERS = {
    PayloadKind.URL: ("text", encode_url),
    PayloadKind.WIFI: ("wifi", encode_wifi),
    PayloadKind.CONTACT: ("contact", encode_contact),
    PayloadKind.EMAIL: ("email", encode_email),
    PayloadKind.SMS: ("sms", encode_sms),
    PayloadKind.SOCIAL: ("social", encode_social),
    PayloadKind.PHONE: ("phone", encode_phone),
    PayloadKind.GEO: ("geo", encode_geo),
    PayloadKind.EVENT: ("event", encode_event),
}


# ---------------- Builder ----------------
def build(kind: PayloadKind | str, records: PayloadRecords) -> str:
    """Encode the record selected by `kind`; "" when that record is blank.

    Callers must not hand a blank result to the renderer.
    """
    try:
        attr, encoder = ENCODERS[PayloadKind(kind)]
    except ValueError:
        return ""
    record = getattr(records, attr)
    if attr == "text":
        return encode_url(record) if (record or "").strip() else ""
    if is_blank_record(record):
        return ""
    return encoder(record)
