"""
Cache key derivation for cacheable GET requests.
"""

from typing import Any, Dict, Mapping, Optional, Sequence, Union

QueryValue = Union[str, int, float, bool, None, Sequence[Any]]

MULTI_VALUE_SEPARATOR = ","


def generate_cache_key(
    path: str,
    query: Optional[Mapping[str, QueryValue]] = None,
    include_query: bool = True,
) -> str:
    """Build a deterministic cache key from a request path and its query.

    Parameter names are sorted so ``?limit=10&page=2`` and ``?page=2&limit=10``
    produce the same key. List values are joined with ``,``.
    """
    base_path = path.split("?", 1)[0]

    if not include_query or not query:
        return base_path

    query_string = "&".join(
        f"{name}={_render_value(query[name])}" for name in sorted(query)
    )
    return f"{base_path}?{query_string}"


def _render_value(value: QueryValue) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return MULTI_VALUE_SEPARATOR.join("" if item is None else str(item) for item in value)
    return str(value)


def query_params_to_mapping(query_params: Any) -> Dict[str, Union[str, list]]:
    """Flatten a Starlette ``QueryParams`` multi-dict.

    Names given once map to their string value; repeated names map to the
    list of values in arrival order.
    """
    mapping: Dict[str, Union[str, list]] = {}
    for name in query_params.keys():
        values = query_params.getlist(name)
        mapping[name] = values[0] if len(values) == 1 else list(values)
    return mapping
