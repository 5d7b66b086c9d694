"""Structural merge of JSON pass data.

Pass data is schema-less JSON. Updates arrive as partial documents which are
merged into the stored document with a single rule applied at every level:
objects are merged key by key, and for any other pair of values (arrays,
scalars, null, or a change of type) the incoming value wins.
"""

import typing as t

from pydantic import JsonValue

JsonObject = dict[str, JsonValue]


def deep_merge(base: JsonValue, incoming: JsonValue) -> JsonValue:
    """Merge ``incoming`` into ``base`` and return the result.

    Neither argument is mutated. Keys of ``base`` missing from ``incoming``
    are preserved; arrays are replaced as a whole.

    Examples:
        >>> deep_merge({"a": {"x": 1, "y": 2}}, {"a": {"y": 3}})
        {'a': {'x': 1, 'y': 3}}
        >>> deep_merge({"a": [1, 2]}, {"a": [3]})
        {'a': [3]}
    """
    if isinstance(base, dict) and isinstance(incoming, dict):
        return merge_objects(base, incoming)
    return _copy(incoming)


def merge_objects(base: JsonObject, incoming: JsonObject) -> JsonObject:
    """Merge two JSON objects key by key."""
    merged: JsonObject = {key: _copy(value) for key, value in base.items()}
    for key, value in incoming.items():
        merged[key] = deep_merge(merged[key], value) if key in merged else _copy(value)
    return merged


def _copy(value: JsonValue) -> JsonValue:
    if isinstance(value, dict):
        return {key: _copy(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_copy(item) for item in t.cast(list[JsonValue], value)]
    return value
