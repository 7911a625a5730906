"""
Canonical string used for signing and verification.

The gateway rebuilds this exact string on its side: keys sorted by UTF-8 byte
order, `sign`/`sign_type` excluded, raw (not URL-encoded) values joined as
`k=v` with `&`.
"""
from __future__ import annotations

import json
from typing import Any, Mapping


EXCLUDED_KEYS = frozenset({"sign", "sign_type"})


def _as_text(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def canonicalize(params: Mapping[str, Any]) -> str:
    items = [(k, v) for k, v in params.items() if k not in EXCLUDED_KEYS and v is not None]
    items.sort(key=lambda kv: kv[0].encode("utf-8"))
    return "&".join(f"{k}={_as_text(v)}" for k, v in items)
