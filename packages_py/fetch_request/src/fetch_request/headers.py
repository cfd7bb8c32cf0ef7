"""
Case-insensitive multi-valued header map.
"""
from typing import Dict, Iterator, List, Optional, Tuple

from .auth.auth_header import mask_auth_value

# RFC 7230 token characters, besides letters and digits.
_TOKEN_EXTRAS = frozenset("!#$%&'*+-.^_`|~")
SENSITIVE_HEADERS = frozenset({"Authorization", "Proxy-Authorization", "X-Api-Key"})


def _is_token_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch in _TOKEN_EXTRAS)


def canonical_header_key(name: str) -> str:
    """Return the canonical form of a header name.

    The first letter and any letter following a hyphen are upper-cased, the
    rest lower-cased: "content-type" -> "Content-Type". Names holding a
    space or any other non-token character are returned unchanged.
    """
    if not name or not all(_is_token_char(ch) for ch in name):
        return name

    chars = []
    upper = True
    for ch in name:
        chars.append(ch.upper() if upper else ch.lower())
        upper = ch == "-"
    return "".join(chars)


class HeaderSet:
    """Header name -> ordered list of values, keyed by canonical name.

    Not safe for concurrent mutation; a builder owns its HeaderSet.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, List[str]] = {}
        if initial:
            for name, value in initial.items():
                self.set(name, value)

    def set(self, name: str, value: str) -> None:
        """Replace all values for name with value."""
        self._values[canonical_header_key(name)] = [value]

    def add(self, name: str, value: str) -> None:
        """Append value to the values for name."""
        self._values.setdefault(canonical_header_key(name), []).append(value)

    def get(self, name: str) -> Optional[str]:
        """Return the first value for name, or None."""
        values = self._values.get(canonical_header_key(name))
        return values[0] if values else None

    def get_list(self, name: str) -> List[str]:
        return list(self._values.get(canonical_header_key(name), []))

    def delete(self, name: str) -> None:
        self._values.pop(canonical_header_key(name), None)

    def multi_items(self) -> List[Tuple[str, str]]:
        """All (name, value) pairs, in insertion order."""
        return [(name, value) for name, values in self._values.items() for value in values]

    def copy(self) -> "HeaderSet":
        clone = HeaderSet()
        clone._values = {name: list(values) for name, values in self._values.items()}
        return clone

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and bool(self._values.get(canonical_header_key(name)))

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderSet):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        """Safe repr that masks credentials."""
        shown = {
            name: [mask_auth_value(v) for v in values] if name in SENSITIVE_HEADERS else values
            for name, values in self._values.items()
        }
        return f"HeaderSet({shown!r})"
