"""Model-facing key handle."""

from __future__ import annotations

from datastore_py.native.entity import Key


class DatastoreKey:
    """
    Opaque handle around a native :class:`Key`.

    Model classes hold DatastoreKey instances for key, parent-key and
    key-reference fields; the mapping engine wraps and unwraps the native
    key without transforming it.
    """

    __slots__ = ("_key",)

    def __init__(self, native_key: Key) -> None:
        if not isinstance(native_key, Key):
            raise TypeError(f"Expecting Key, but found {type(native_key).__name__}")
        self._key = native_key

    @classmethod
    def of(
        cls, kind: str, name_or_id: str | int, parent: DatastoreKey | None = None
    ) -> DatastoreKey:
        native_parent = parent.native_key() if parent is not None else None
        return cls(Key.of(kind, name_or_id, parent=native_parent))

    def native_key(self) -> Key:
        return self._key

    @property
    def kind(self) -> str:
        return self._key.kind

    @property
    def name(self) -> str | None:
        return self._key.name

    @property
    def id(self) -> int | None:
        return self._key.id

    @property
    def namespace(self) -> str | None:
        return self._key.namespace

    @property
    def parent(self) -> DatastoreKey | None:
        parent = self._key.parent
        return DatastoreKey(parent) if parent is not None else None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DatastoreKey):
            return NotImplemented
        return self._key == other._key

    def __hash__(self) -> int:
        return hash(self._key)

    def __repr__(self) -> str:
        return f"DatastoreKey({self._key!r})"
