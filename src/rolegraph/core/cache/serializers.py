"""JSON codec for values kept in Redis.

Session records and access snapshots carry UUIDs, timestamps and
permission sets, none of which plain JSON can represent. Those values are
wrapped in a small ``{"$t": <tag>, "v": <payload>}`` envelope on the way
out and unwrapped by the object hook on the way back.
"""

import json
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel


TYPE_TAG = "$t"
VALUE_KEY = "v"


def _encode(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        # Models travel as their JSON dump; readers call model_validate.
        return obj.model_dump(mode="json")
    if isinstance(obj, UUID):
        return {TYPE_TAG: "uuid", VALUE_KEY: obj.hex}
    if isinstance(obj, datetime):
        return {TYPE_TAG: "datetime", VALUE_KEY: obj.isoformat()}
    if isinstance(obj, set | frozenset):
        return {TYPE_TAG: "set", VALUE_KEY: sorted(obj, key=str)}
    raise TypeError(f"{type(obj).__name__} is not cache-serializable")


_DECODERS = {
    "uuid": UUID,
    "datetime": datetime.fromisoformat,
    "set": set,
}


def _decode(obj: dict[str, Any]) -> Any:
    tag = obj.get(TYPE_TAG)
    if tag in _DECODERS and len(obj) == 2:
        return _DECODERS[tag](obj[VALUE_KEY])
    return obj


def serialize(value: Any) -> str:
    """Encode a value as a compact JSON string."""
    return json.dumps(value, default=_encode, separators=(",", ":"))


def deserialize(data: str | bytes) -> Any:
    """Decode a string produced by :func:`serialize`.

    Pydantic models come back as plain dicts.
    """
    return json.loads(data, object_hook=_decode)
