from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import UUID


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def serialize_push(user_id: str, event: str, data: dict[str, Any]) -> str:
    envelope = {"user_id": user_id, "event": event, "data": data}
    return json.dumps(envelope, cls=_Encoder)


def deserialize_push(raw: str | bytes) -> tuple[str, str, dict[str, Any]]:
    envelope = json.loads(raw)
    return envelope["user_id"], envelope["event"], envelope["data"]
