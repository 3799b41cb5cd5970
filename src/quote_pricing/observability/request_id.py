"""Correlation id for a pricing run.

Every log line written while a batch of quotes is priced carries the same id,
so one run can be followed across matcher, pricing and AI blend logs.
"""

import uuid
from contextvars import ContextVar
from typing import Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique run ID.

    Returns:
        str: UUID v4 run ID
    """
    return str(uuid.uuid4())


def get_request_id() -> str:
    """Get current run ID from context.

    Returns:
        str: Current run ID or "no-request-id" if not set
    """
    return request_id_var.get() or "no-request-id"


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)
