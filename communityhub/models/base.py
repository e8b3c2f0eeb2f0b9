# Shared column helpers for the models

import uuid
from datetime import datetime, timezone


def new_id():
    return str(uuid.uuid4())


def utcnow():
    # Naive UTC, matching what the DateTime columns store
    return datetime.now(timezone.utc).replace(tzinfo=None)


def iso(value):
    # Timestamps go over the wire as ISO-8601 UTC with a trailing Z
    if value is None:
        return None
    return value.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'
