"""Common utilities for tests."""

from types import SimpleNamespace
from typing import Any, Optional

from mockfirestore import CollectionReference, Query
from mockfirestore.document import DocumentReference

SENTINELS = ("ArrayUnion", "ArrayRemove", "Increment")

# Newer google-cloud-firestore releases turn ``== None`` into unary operators.
UNARY_OPERATORS = {"IS_NULL": ("==", None), "IS_NOT_NULL": ("!=", None)}


def _is_sentinel(value: Any) -> bool:
    return type(value).__name__ in SENTINELS


def _apply_sentinel(existing: Any, value: Any) -> Any:
    kind = type(value).__name__
    if kind == "Increment":
        return (existing or 0) + value.value
    items = list(existing) if isinstance(existing, list) else []
    if kind == "ArrayUnion":
        for item in value.values:
            if item not in items:
                items.append(item)
        return items
    return [item for item in items if item not in value.values]


def _filter_args(field_filter: Any) -> tuple[str, str, Any]:
    operator = field_filter.op_string
    name = getattr(operator, "name", None)
    if name in UNARY_OPERATORS:
        return (field_filter.field_path, *UNARY_OPERATORS[name])
    return field_filter.field_path, operator, field_filter.value


class _CountQuery:
    """Mimics the aggregation query returned by ``Query.count()``."""

    def __init__(self, query: Any, alias: Optional[str]) -> None:
        self._query = query
        self._alias = alias or "count"

    def get(self) -> list[list[SimpleNamespace]]:
        total = sum(1 for _ in self._query.stream())
        return [[SimpleNamespace(alias=self._alias, value=total)]]


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore to behave like the real client.

    Adds FieldFilter support, unary null filters, count aggregations,
    multi-field ordering, Firestore's skipping of type-mismatched range
    comparisons and resolution of write transforms.
    """

    def collection_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(*_filter_args(filter))
        return self._where(field_path, op_string, value)

    if not hasattr(CollectionReference, "_where"):
        CollectionReference._where = CollectionReference.where
        CollectionReference.where = collection_where

    def query_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(*_filter_args(filter))
        return self._where(field_path, op_string, value)

    if not hasattr(Query, "_where"):
        Query._where = Query.where
        Query.where = query_where

    def count(self: Any, alias: Optional[str] = None) -> _CountQuery:
        return _CountQuery(self, alias)

    Query.count = count
    CollectionReference.count = count

    if not hasattr(Query, "_orig_order_by"):
        Query._orig_order_by = Query.order_by

        def order_by(self: Any, key: str, direction: str = "ASCENDING") -> Any:
            # Orders are applied as successive stable sorts, so the first
            # requested key must be sorted last.
            self.orders.insert(0, (key, direction))
            return self

        Query.order_by = order_by

    if not hasattr(Query, "_orig_compare_func"):
        Query._orig_compare_func = Query._compare_func

        def compare_func(self: Any, op: str) -> Any:
            compare = self._orig_compare_func(op)

            def safe_compare(field_value: Any, value: Any) -> bool:
                try:
                    return bool(compare(field_value, value))
                except TypeError:
                    return False

            return safe_compare

        Query._compare_func = compare_func

    if not hasattr(DocumentReference, "_orig_update"):
        DocumentReference._orig_update = DocumentReference.update

        def patched_update(self: Any, data: dict[str, Any]) -> Any:
            # Resolve Firestore transforms against the stored document first.
            current_data = self.get().to_dict() or {}
            resolved = {
                key: _apply_sentinel(current_data.get(key), value)
                if _is_sentinel(value)
                else value
                for key, value in data.items()
            }
            return self._orig_update(resolved)

        DocumentReference.update = patched_update
