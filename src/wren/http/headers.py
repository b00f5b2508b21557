"""Immutable, case-insensitive request headers.

Implements ``Mapping[str, str]``. Built from raw ASGI byte pairs or from
a plain mapping; names are lower-cased once at construction.
"""

from collections.abc import Iterable, Iterator, Mapping


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive HTTP headers.

    ``__getitem__`` returns the first matching value.
    ``get_list`` returns all values for a header.
    """

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[tuple[str, str]] = ()) -> None:
        object.__setattr__(
            self, "_items", tuple((name.lower(), value) for name, value in items)
        )

    @classmethod
    def from_raw(cls, raw: Iterable[tuple[bytes, bytes]]) -> "Headers":
        """Decode ASGI ``(name, value)`` byte pairs."""
        return cls((name.decode("latin-1"), value.decode("latin-1")) for name, value in raw)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str] | None) -> "Headers":
        return cls((mapping or {}).items())

    def __getitem__(self, key: str) -> str:
        key = key.lower()
        for name, value in self._items:
            if name == key:
                return value
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        key = key.lower()
        return any(name == key for name, _ in self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(dict.fromkeys(name for name, _ in self._items))

    def __len__(self) -> int:
        return len(dict.fromkeys(name for name, _ in self._items))

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"Headers({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key* (e.g. repeated ``Accept`` lines)."""
        key = key.lower()
        return [value for name, value in self._items if name == key]
