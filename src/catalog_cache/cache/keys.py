"""
Cache key construction.

A key is ``<namespace><type>_<base64(canonical params)>`` where the canonical
parameter string is ``k1=v1&k2=v2`` with keys sorted and both sides
percent-encoded. Base64 never produces ``_``, so the type can always be
recovered from the last underscore.

Values are compared by their query-string form, not their Python type:
``1``, ``1.0`` and ``"1"`` render the same, as do ``True`` and ``"true"``.
Parameters parsed from a URL arrive as strings, so ``{"page": "1"}`` and
``{"page": 1}`` share one entry.

Classes:
    KeyEncoder: Encode and decode cache keys for one namespace

Functions:
    canonicalize: Deterministic string form of a parameter bag
    render_value: Canonical string form of one parameter value
"""

from __future__ import annotations

import base64
import binascii
import math
from collections.abc import Mapping
from urllib.parse import quote, unquote

from ..core.types import DataType, ParamValue
from ..utils.error_handling import CacheKeyError


def render_value(name: str, value: ParamValue) -> str:
    # bool first: it is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, str):
        return value
    raise CacheKeyError(
        f"Cache parameter {name!r} has unsupported type {type(value).__name__}",
        param=name,
    )


def canonicalize(params: Mapping[str, ParamValue] | None) -> str:
    """
    Render a parameter bag as a canonical query string.

    Args:
        params: String-keyed map of primitive values

    Returns:
        ``k1=v1&k2=v2`` with keys sorted lexicographically

    Raises:
        CacheKeyError: If a key is not a string or a value is not primitive
    """
    if not params:
        return ""

    parts = []
    for name in sorted(params):
        if not isinstance(name, str):
            raise CacheKeyError(f"Cache parameter names must be strings, got {name!r}")
        rendered = render_value(name, params[name])
        parts.append(f"{quote(name, safe='')}={quote(rendered, safe='')}")
    return "&".join(parts)


def _parse_canonical(text: str) -> dict[str, str]:
    params: dict[str, str] = {}
    if not text:
        return params
    for part in text.split("&"):
        name, sep, value = part.partition("=")
        if not sep:
            raise ValueError(f"malformed parameter segment: {part!r}")
        params[unquote(name)] = unquote(value)
    return params


class KeyEncoder:
    """Encodes ``(type, params)`` pairs into namespaced storage keys."""

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace

    def encode(self, data_type: DataType | str, params: Mapping[str, ParamValue] | None = None) -> str:
        data_type = DataType.coerce(data_type)
        encoded = base64.b64encode(canonicalize(params).encode("utf-8")).decode("ascii")
        return f"{self.type_prefix(data_type)}{encoded}"

    def type_prefix(self, data_type: DataType | str) -> str:
        return f"{self.namespace}{DataType.coerce(data_type).value}_"

    def owns(self, key: str) -> bool:
        return key.startswith(self.namespace)

    def decode(self, key: str) -> tuple[DataType, dict[str, str]] | None:
        """
        Recover the type and parameters from a key.

        Returns None for keys outside the namespace or that do not decode.
        Parameter values come back in their canonical string form.
        """
        if not self.owns(key):
            return None

        type_part, sep, encoded = key[len(self.namespace):].rpartition("_")
        if not sep:
            return None
        try:
            data_type = DataType(type_part)
            text = base64.b64decode(encoded.encode("ascii"), validate=True).decode("utf-8")
            return data_type, _parse_canonical(text)
        except (ValueError, binascii.Error, UnicodeError):
            return None
