from collections.abc import MutableMapping
from typing import Any, Iterable, Iterator


class AttributeMap(MutableMapping):
    """
    Ordered field name -> value mapping holding a record's in-memory state.

    Any string key may be written. Keys the table does not have are kept
    alongside the real columns and only separated out when the record is
    written, see split().
    """

    def __init__(self, data=None):
        self._data: dict[str, Any] = {}
        if data:
            self.update(data)

    def __getitem__(self, field: str) -> Any:
        return self._data[field]

    def __setitem__(self, field: str, value: Any) -> None:
        self._data[field] = value

    def __delitem__(self, field: str) -> None:
        del self._data[field]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"AttributeMap({self._data!r})"

    def as_dict(self) -> dict[str, Any]:
        return dict(self._data)

    def split(self, columns: Iterable[str]) -> tuple[dict[str, Any], dict[str, Any]]:
        """
        Separate table columns from extra keys.

        Returns:
            (known, extra), both in map order
        """
        return split_known(self._data, columns)


def split_known(data, columns: Iterable[str]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split ``data`` into the entries named by ``columns`` and the rest."""
    allowed = set(columns)
    known, extra = {}, {}
    for field, value in data.items():
        if field in allowed:
            known[field] = value
        else:
            extra[field] = value
    return known, extra
