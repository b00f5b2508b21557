"""Immutable query string parameters."""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qs


class QueryParams(Mapping[str, str]):
    """Immutable query string parameters.

    ``__getitem__`` returns the first value for a key, so ``req.query["q"]``
    reads like the single-valued mapping most handlers expect.
    ``get_list`` returns all values for a key.
    """

    __slots__ = ("_data", "_raw")

    def __init__(self, query_string: str | bytes = "") -> None:
        if isinstance(query_string, bytes):
            query_string = query_string.decode("latin-1")
        object.__setattr__(self, "_raw", query_string)
        object.__setattr__(self, "_data", parse_qs(query_string, keep_blank_values=True))

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"QueryParams({{{items}}})"

    @property
    def raw(self) -> str:
        """The undecoded query string, without the leading ``?``."""
        return self._raw

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._data.get(key)
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        return list(self._data.get(key, []))

    def get_int(self, key: str, default: int | None = None) -> int | None:
        """Return value as int, or *default* if missing or not numeric."""
        value = self.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            return default
