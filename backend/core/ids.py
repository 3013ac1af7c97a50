"""
Identifier generation for steps, timers and log entries
"""

import uuid


def create_id() -> str:
    """Create an opaque unique identifier"""
    return uuid.uuid4().hex
