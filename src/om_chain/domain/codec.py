"""Codec for the chain's textual mapping encoding.

A mapping value is a brace-delimited record of `name: value<suffix>` pairs:

    {
      id: 1u64,
      creator: aleo1awc7...78elv,
      market_type: 1u8,
      yes_reserves: 50000000u64,
      no_reserves: 50000000u64,
      status: 0u8
    }

The explorer may return it bare or JSON-string wrapped with escaped
newlines. A missing key comes back as the literal `null`. Fields can appear
in any order. Numeric values carry a type suffix (u8, u64, u128, ...).

Parsing fails closed: any missing or malformed required field raises
MappingParseError naming the field.
"""

import json
import re

from src.om_chain.domain.models import OnchainMarket
from src.om_common.enums import MarketStatus
from src.om_common.errors import MappingParseError

_FIELD_RE = re.compile(r"([A-Za-z_][A-Za-z0-9_]*)\s*:\s*([^,{}\s]+)")
_TYPE_SUFFIX_RE = re.compile(r"[a-z]+[0-9]*$")

_MARKET_FIELDS = ("id", "creator", "market_type", "yes_reserves", "no_reserves", "status")


def is_null(raw: str | None) -> bool:
    """True for the explorer's 'no such key' answers."""
    if raw is None:
        return True
    body = raw.strip()
    return body in ("", "null", '"null"')


def unwrap(raw: str) -> str:
    """Undo JSON-string wrapping (`"{\\n  id: 1u64 ...}"`) if present."""
    body = raw.strip()
    if body.startswith('"') and body.endswith('"'):
        try:
            decoded = json.loads(body)
        except json.JSONDecodeError:
            return body
        if isinstance(decoded, str):
            return decoded.strip()
    return body


def strip_type_suffix(value: str) -> str:
    """'50000000u64' -> '50000000'. Non-numeric values are returned unchanged."""
    value = value.strip()
    if not value or not value[0].isdigit():
        return value
    return _TYPE_SUFFIX_RE.sub("", value)


def parse_record(raw: str) -> dict[str, str]:
    """Extract raw `name -> value` pairs from a brace-delimited record."""
    body = unwrap(raw)
    if not (body.startswith("{") and body.endswith("}")):
        raise MappingParseError("<record>", raw)
    return {m.group(1): m.group(2) for m in _FIELD_RE.finditer(body[1:-1])}


def parse_integer(value: str, field: str) -> int:
    digits = strip_type_suffix(value)
    if not (digits.isascii() and digits.isdigit()):
        raise MappingParseError(field, value)
    return int(digits)


def parse_scalar(raw: str, field: str = "value") -> int:
    """Parse a bare typed scalar such as `1500000u128`."""
    return parse_integer(unwrap(raw), field)


def parse_onchain_market(raw: str) -> OnchainMarket:
    """Parse a `markets` mapping value. Caller must handle null first."""
    fields = parse_record(raw)
    for name in _MARKET_FIELDS:
        if name not in fields:
            raise MappingParseError(name, raw)

    status_code = parse_integer(fields["status"], "status")
    try:
        status = MarketStatus.from_onchain(status_code)
    except KeyError:
        raise MappingParseError("status", fields["status"]) from None

    return OnchainMarket(
        id=parse_integer(fields["id"], "id"),
        creator=fields["creator"],
        market_type=parse_integer(fields["market_type"], "market_type"),
        yes_reserves=parse_integer(fields["yes_reserves"], "yes_reserves"),
        no_reserves=parse_integer(fields["no_reserves"], "no_reserves"),
        status=status,
    )
