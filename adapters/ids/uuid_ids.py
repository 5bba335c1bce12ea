from __future__ import annotations

import uuid


def uuid_id_generator() -> str:
    return str(uuid.uuid4())
