"""Parse 13F information-table XML documents."""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

from .errors import FilingParseError
from .models import RawHolding
from .sources.utils import parse_number

LOGGER = logging.getLogger(__name__)

CUSIP_LENGTH = 9
# Under the thousands-of-dollars convention this would be a single $100B position.
WHOLE_DOLLAR_THRESHOLD = 100_000_000


def _local(tag: str) -> str:
    """Strip the namespace from an element tag and lower-case it."""

    if "}" in tag:
        tag = tag.split("}", 1)[1]
    return tag.lower()


def _children(element: ET.Element) -> Dict[str, ET.Element]:
    children: Dict[str, ET.Element] = {}
    for child in element:
        children.setdefault(_local(child.tag), child)
    return children


def _text(fields: Dict[str, ET.Element], name: str) -> str:
    element = fields.get(name)
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def _find_table(root: ET.Element) -> Optional[ET.Element]:
    """Return the element holding the ``infoTable`` rows, if any."""

    if _local(root.tag) == "informationtable":
        return root
    for element in root.iter():
        if _local(element.tag) == "informationtable":
            return element
    for element in root.iter():
        name = _local(element.tag)
        if "informationtable" in name or (
            "information" in name and any(_local(child.tag) == "infotable" for child in element)
        ):
            return element
    return None


def normalize_cusip(raw: str) -> str:
    """Upper-case an identifier and restore leading zeros lost to numeric coercion."""

    cusip = raw.strip().upper()
    if len(cusip) < CUSIP_LENGTH and cusip.isdigit():
        cusip = cusip.zfill(CUSIP_LENGTH)
    return cusip


def _parse_entry(entry: ET.Element) -> RawHolding:
    fields = _children(entry)
    amounts_element = fields.get("shrsorprnamt")
    amounts = _children(amounts_element) if amounts_element is not None else {}

    shares = parse_number(_text(amounts, "sshprnamt")) or 0.0
    put_call = _text(fields, "putcall").upper() or None
    return RawHolding(
        name_of_issuer=_text(fields, "nameofissuer"),
        title_of_class=_text(fields, "titleofclass"),
        cusip=normalize_cusip(_text(fields, "cusip")),
        value=parse_number(_text(fields, "value")) or 0.0,
        shares=int(round(shares)),
        shares_type=_text(amounts, "sshprnamttype").upper() or "SH",
        put_call=put_call,
        investment_discretion=_text(fields, "investmentdiscretion"),
    )


def normalize_units(holdings: List[RawHolding]) -> bool:
    """Rescale a whole document reported in dollars to thousands of dollars.

    The decision is taken once per document: if any single position exceeds
    ``WHOLE_DOLLAR_THRESHOLD`` every row is divided by 1000. Returns whether
    the document was rescaled.
    """

    if not holdings:
        return False
    max_value = max(holding.value for holding in holdings)
    if max_value <= WHOLE_DOLLAR_THRESHOLD:
        return False
    LOGGER.info("Values reported in whole dollars (max %s); rescaling to thousands", f"{max_value:,.0f}")
    for holding in holdings:
        holding.value = round(holding.value / 1000)
    return True


def parse_information_table(document: bytes | str) -> List[RawHolding]:
    """Parse one information-table document into raw holdings."""

    try:
        root = ET.fromstring(document)
    except ET.ParseError as exc:
        raise FilingParseError(f"Malformed holdings XML: {exc}") from exc

    table = _find_table(root)
    entries = [] if table is None else [el for el in table if _local(el.tag) == "infotable"]
    if not entries:
        top_level = [_local(root.tag)] + [_local(child.tag) for child in root]
        LOGGER.error("Unrecognised holdings XML structure: %s", top_level)
        raise FilingParseError(
            f"No infoTable entries found; top-level elements: {', '.join(top_level)}"
        )

    holdings = [_parse_entry(entry) for entry in entries]
    LOGGER.info("Parsed %d holdings rows", len(holdings))
    normalize_units(holdings)
    return holdings


__all__ = [
    "WHOLE_DOLLAR_THRESHOLD",
    "normalize_cusip",
    "normalize_units",
    "parse_information_table",
]
