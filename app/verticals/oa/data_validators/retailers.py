from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

UNKNOWN = "unknown"

_HOST = re.compile(r"(?:https?://)?(?:www\.)?([^/:#?]+)", re.IGNORECASE)
_URL_LIKE = re.compile(r"^(https?://|www\.|.*\.[a-z]{2,}(/|$|\?|#))", re.IGNORECASE)
_DOMAIN_NOISE = re.compile(r"www\.|\.co\.uk|\.com")
_NON_ALNUM = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class Retailer:
    brand: str
    host: str
    supplier: str

    @property
    def key(self) -> str:
        return (self.supplier or self.brand or self.host).lower()

    @property
    def label(self) -> str:
        if self.supplier:
            return self.supplier
        return self.brand.capitalize() if self.brand else self.host


def looks_like_url(link: str) -> bool:
    return bool(_URL_LIKE.match(link)) or ("." in link and "/" in link)


def brand_and_host(link: str) -> Tuple[str, str]:
    """('argos', 'argos.co.uk') for 'https://www.argos.co.uk/product/1'."""
    if not link:
        return UNKNOWN, UNKNOWN
    m = _HOST.match(link)
    host = (m.group(1) if m else link).lower()
    parts = host.split(".")
    if host.endswith(".co.uk") and len(parts) >= 3:
        return parts[-3], host
    if len(parts) >= 2:
        return parts[-2], host
    return UNKNOWN, host


def _squash(value: str) -> str:
    return _NON_ALNUM.sub("", _DOMAIN_NOISE.sub("", value.lower()))


def match_supplier(brand: str, host: str, names: Sequence[str]) -> Optional[str]:
    """
    Name from the restock time sheet for a retailer: exact brand or host
    first, then a containment match on the squashed brand, then on the host.
    """
    b, h = brand.lower(), host.lower()
    for name in names:
        if name.lower() in (b, h):
            return name

    for needle in (_squash(b), _squash(h)):
        if not needle:
            continue
        for name in names:
            key = _squash(name)
            if key and (needle in key or key in needle):
                return name
    return None


def resolve_retailer(link: str, names: Sequence[str]) -> Retailer:
    """A goods row's retailer link (URL or plain retailer name) to its supplier."""
    if looks_like_url(link):
        brand, host = brand_and_host(link)
        supplier = match_supplier(brand, host, names) or brand or host
        return Retailer(brand=brand, host=host, supplier=supplier)

    name = link.strip()
    supplier = match_supplier(name, name, names) or name
    return Retailer(brand=name.lower(), host=name.lower(), supplier=supplier)
