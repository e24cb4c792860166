# app/core/identity.py
import re
import string
from dataclasses import dataclass
from typing import Mapping

UNKNOWN_IP = "unknown"

# Order matters: changing it changes every stored fingerprint.
FINGERPRINT_HEADERS = (
    "user-agent",
    "accept-language",
    "accept-encoding",
    "sec-ch-ua",
    "sec-ch-ua-platform",
    "sec-ch-ua-mobile",
)

VISITOR_HEADERS = ("user-agent", "accept-language", "accept-encoding")

_DIGITS = string.digits + string.ascii_lowercase

_TABLET_RE = re.compile(r"(tablet|ipad|playbook|silk)|(android(?!.*mobi))", re.IGNORECASE)
_MOBILE_RE = re.compile(r"mobile|iphone|ipod|android|blackberry|opera mini|iemobile", re.IGNORECASE)


@dataclass(frozen=True)
class Identity:
    """Request-derived identity of an anonymous visitor."""
    ip: str
    fingerprint: str


def extract_client_ip(headers: Mapping[str, str]) -> str:
    """
    x-forwarded-for (first hop) > x-real-ip > "unknown".
    The value is used as an opaque key, it is not checked to be a real address.
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip

    return UNKNOWN_IP


def rolling_hash(data: str) -> int:
    """
    hash = hash * 31 + code, kept as a signed 32-bit integer after every step.
    Iterates UTF-16 code units so fingerprints match the ones already stored
    by the browser-side implementation.
    """
    h = 0
    raw = data.encode("utf-16-le")
    for i in range(0, len(raw), 2):
        code = raw[i] | (raw[i + 1] << 8)
        h = ((h << 5) - h + code) & 0xFFFFFFFF
        if h >= 0x80000000:
            h -= 0x100000000
    return h


def to_base(number: int, base: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, base)
        digits.append(_DIGITS[remainder])
    return "".join(reversed(digits))


def compute_fingerprint(ip: str, headers: Mapping[str, str]) -> str:
    parts = [ip] + [headers.get(name) or "" for name in FINGERPRINT_HEADERS]
    return to_base(abs(rolling_hash("|".join(parts))), 36)


def compute_visitor_id(headers: Mapping[str, str]) -> str:
    """Hex visitor id used by analytics when the client did not send one."""
    parts = [headers.get(name) or "" for name in VISITOR_HEADERS]
    return to_base(abs(rolling_hash("|".join(parts))), 16)


def extract_identity(headers: Mapping[str, str]) -> Identity:
    ip = extract_client_ip(headers)
    return Identity(ip=ip, fingerprint=compute_fingerprint(ip, headers))


def detect_device_type(user_agent: str) -> str:
    if _TABLET_RE.search(user_agent):
        return "tablet"
    if _MOBILE_RE.search(user_agent):
        return "mobile"
    return "desktop"
