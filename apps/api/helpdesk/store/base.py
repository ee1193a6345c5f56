from typing import Any, NamedTuple, Protocol, Sequence


class Where(NamedTuple):
    """Field predicate. ``op`` is ``"=="`` or ``"in"``."""

    field: str
    op: str
    value: Any


class DocumentStore(Protocol):
    """
    Document persistence the services rely on.

    Documents are plain JSON-compatible dicts. Every document returned by
    ``get``/``query`` carries its identifier under the ``"id"`` key.
    """

    def get(self, collection: str, doc_id: str) -> dict | None: ...

    def add(self, collection: str, doc: dict, doc_id: str | None = None) -> str: ...

    def update(self, collection: str, doc_id: str, partial: dict) -> None: ...

    def delete(self, collection: str, doc_id: str) -> None: ...

    def query(
        self,
        collection: str,
        where: Sequence[Where] = (),
        order_by: str | None = None,
        descending: bool = False,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[dict]: ...

    def count(self, collection: str, where: Sequence[Where] = ()) -> int: ...

    def append_to_array(
        self,
        collection: str,
        doc_id: str,
        field: str,
        value: Any,
        updates: dict | None = None,
    ) -> None: ...
