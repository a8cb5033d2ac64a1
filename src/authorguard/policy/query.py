"""
Ownership filters.

Builders for the constraints injected into search bodies and realtime
subscription filters. Every builder ANDs the ownership constraint with
whatever the caller already asked for; the caller's constraint is never
dropped or loosened.

Search body shape produced by restrict_search_body:

    {"query": {"bool": {
        "filter": {"bool": {"must": {"term": {<author_field>: <actor id>}}}},
        "must": <inbound query, when present>
    }}}

Subscription filter shape produced by restrict_subscription_filter:

    {"and": [<inbound filter>, {"equals": {<author_field>: <actor id>}}]}
"""

import copy
from typing import Any


def ownership_term(actor_id: str, author_field: str) -> dict[str, Any]:
    """The search clause matching documents authored by actor_id."""
    return {"term": {author_field: actor_id}}


def ownership_query(
    actor_id: str,
    author_field: str,
    inner: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Wrap inner in a bool query that also requires authorship.

    With no inner query the ownership filter is the whole query.
    """
    query: dict[str, Any] = {
        "bool": {
            "filter": {
                "bool": {
                    "must": ownership_term(actor_id, author_field),
                },
            },
        },
    }
    if inner:
        query["bool"]["must"] = copy.deepcopy(inner)
    return query


def restrict_search_body(
    body: dict[str, Any] | None,
    actor_id: str,
    author_field: str,
) -> dict[str, Any]:
    """
    Return a copy of a search body narrowed to the actor's documents.

    Keys other than "query" (sort, from, size, aggregations...) are kept.
    """
    restricted = copy.deepcopy(body) if body else {}
    restricted["query"] = ownership_query(actor_id, author_field, restricted.get("query"))
    return restricted


def ownership_equals(actor_id: str, author_field: str) -> dict[str, Any]:
    """The subscription clause matching documents authored by actor_id."""
    return {"equals": {author_field: actor_id}}


def restrict_subscription_filter(
    filters: dict[str, Any] | None,
    actor_id: str,
    author_field: str,
) -> dict[str, Any]:
    """Return a subscription filter that also requires authorship."""
    clause = ownership_equals(actor_id, author_field)
    if not filters:
        return clause
    return {"and": [copy.deepcopy(filters), clause]}
