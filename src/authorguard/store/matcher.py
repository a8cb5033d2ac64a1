"""
Query evaluation for the in-memory reference store.

Two small dialects are supported, matching what the policy engine emits
and what a caller typically sends alongside it:

Search bodies (match_query):
    match_all, term, terms, ids, exists, range, and bool with
    must / filter / should / must_not (single clause or list).

Subscription filters (match_filter):
    equals, in, exists, and, or, not.

Fields are addressed with dotted paths. The document's source is the
root, and its metadata is reachable under "_meta" (e.g. "_meta.author").
"""

from typing import Any

from authorguard.schema import Document

_MISSING = object()


def document_view(document: Document) -> dict[str, Any]:
    """Flatten a document into the mapping that queries are evaluated on."""
    view = dict(document.source)
    view["_id"] = document.id
    view["_meta"] = document.meta.model_dump(mode="json")
    return view


def resolve_field(view: dict[str, Any], path: str) -> Any:
    """Look up a dotted path, returning _MISSING when absent."""
    current: Any = view
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _single_entry(clause: dict[str, Any], name: str) -> tuple[str, Any]:
    if not isinstance(clause, dict) or len(clause) != 1:
        msg = f"'{name}' expects exactly one field, got {clause!r}"
        raise ValueError(msg)
    return next(iter(clause.items()))


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


# =============================================================================
# Search bodies
# =============================================================================


def match_query(query: dict[str, Any] | None, view: dict[str, Any]) -> bool:
    """
    Evaluate a search query against a flattened document.

    A missing or empty query matches everything.

    Raises:
        ValueError: For unsupported or malformed clauses
    """
    if not query:
        return True
    if len(query) != 1:
        msg = f"A query clause must have exactly one operator, got {sorted(query)}"
        raise ValueError(msg)

    operator, args = next(iter(query.items()))

    if operator == "match_all":
        return True

    if operator == "term":
        field_path, expected = _single_entry(args, "term")
        if isinstance(expected, dict):
            expected = expected.get("value")
        return resolve_field(view, field_path) == expected

    if operator == "terms":
        field_path, candidates = _single_entry(args, "terms")
        return resolve_field(view, field_path) in _as_list(candidates)

    if operator == "ids":
        return view.get("_id") in _as_list(args.get("values"))

    if operator == "exists":
        value = resolve_field(view, args["field"])
        return value is not _MISSING and value is not None

    if operator == "range":
        field_path, bounds = _single_entry(args, "range")
        return _in_range(resolve_field(view, field_path), bounds)

    if operator == "bool":
        return _match_bool(args, view)

    msg = f"Unsupported query operator: {operator}"
    raise ValueError(msg)


def _in_range(value: Any, bounds: dict[str, Any]) -> bool:
    if value is _MISSING or value is None:
        return False
    try:
        if "gt" in bounds and not value > bounds["gt"]:
            return False
        if "gte" in bounds and not value >= bounds["gte"]:
            return False
        if "lt" in bounds and not value < bounds["lt"]:
            return False
        if "lte" in bounds and not value <= bounds["lte"]:
            return False
    except TypeError:
        return False
    return True


def _match_bool(args: dict[str, Any], view: dict[str, Any]) -> bool:
    unknown = set(args) - {"must", "filter", "should", "must_not", "minimum_should_match"}
    if unknown:
        msg = f"Unsupported bool keys: {sorted(unknown)}"
        raise ValueError(msg)

    for clause in _as_list(args.get("must")) + _as_list(args.get("filter")):
        if not match_query(clause, view):
            return False

    for clause in _as_list(args.get("must_not")):
        if match_query(clause, view):
            return False

    should = _as_list(args.get("should"))
    if should:
        # With must/filter present, should clauses only score unless forced
        default_minimum = 0 if ("must" in args or "filter" in args) else 1
        minimum = args.get("minimum_should_match", default_minimum)
        matched = sum(1 for clause in should if match_query(clause, view))
        if matched < minimum:
            return False

    return True


# =============================================================================
# Subscription filters
# =============================================================================


def match_filter(filters: dict[str, Any] | None, view: dict[str, Any]) -> bool:
    """
    Evaluate a subscription filter against a flattened document.

    A missing or empty filter matches everything.

    Raises:
        ValueError: For unsupported or malformed operators
    """
    if not filters:
        return True
    if len(filters) != 1:
        msg = f"A filter must have exactly one operator, got {sorted(filters)}"
        raise ValueError(msg)

    operator, args = next(iter(filters.items()))

    if operator == "equals":
        field_path, expected = _single_entry(args, "equals")
        return resolve_field(view, field_path) == expected

    if operator == "in":
        field_path, candidates = _single_entry(args, "in")
        return resolve_field(view, field_path) in _as_list(candidates)

    if operator == "exists":
        field_path = args if isinstance(args, str) else args["field"]
        value = resolve_field(view, field_path)
        return value is not _MISSING and value is not None

    if operator == "and":
        return all(match_filter(sub, view) for sub in args)

    if operator == "or":
        return any(match_filter(sub, view) for sub in args)

    if operator == "not":
        return not match_filter(args, view)

    msg = f"Unsupported filter operator: {operator}"
    raise ValueError(msg)
