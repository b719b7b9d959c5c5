"""Symbol tables binding formula identifiers to base fields."""

from typing import Dict, Iterable, Optional

from ..core.errors import UnknownSymbolError

DEFAULT_ALIASES: Dict[str, str] = {
    "o": "open",
    "h": "high",
    "l": "low",
    "c": "close",
    "v": "volume",
}


class SymbolTable:
    """Maps bare identifiers (``c``, ``v``) to the base fields they read.

    A full field name is accepted wherever its alias is. With
    ``allow_any=True`` every identifier resolves to itself, which is how
    static conditions are parsed when the set of metadata fields is unknown.
    """

    def __init__(self, aliases: Optional[Dict[str, str]] = None, allow_any: bool = False):
        self._aliases: Dict[str, str] = dict(DEFAULT_ALIASES if aliases is None else aliases)
        self._fields = set(self._aliases.values())
        self.allow_any = allow_any

    @classmethod
    def for_fields(cls, fields: Iterable[str]) -> "SymbolTable":
        """Table in which each field name is its own symbol."""
        return cls({f: f for f in fields})

    @classmethod
    def from_string(cls, spec: str) -> "SymbolTable":
        """Parse ``"c=close,v=volume"``."""
        aliases: Dict[str, str] = {}
        for part in spec.split(","):
            if not part.strip():
                continue
            alias, _, field = part.partition("=")
            if not field.strip():
                raise ValueError(f"Invalid symbol binding '{part.strip()}'")
            aliases[alias.strip()] = field.strip()
        return cls(aliases)

    def resolve(self, name: str) -> str:
        """Return the base field for *name* or raise ``UnknownSymbolError``."""
        if name in self._aliases:
            return self._aliases[name]
        if name in self._fields or self.allow_any:
            return name
        raise UnknownSymbolError(name)

    def __contains__(self, name: str) -> bool:
        return name in self._aliases or name in self._fields or self.allow_any

    @property
    def aliases(self) -> Dict[str, str]:
        return dict(self._aliases)

    @property
    def fields(self) -> set:
        return set(self._fields)
