"""Operator identification for mutating endpoints."""

from fastapi import Security
from fastapi.security import APIKeyHeader

# Operator header scheme
operator_header = APIKeyHeader(name="X-Operator-Id", auto_error=False)


async def get_operator_id(operator_id: str | None = Security(operator_header)) -> str | None:
    """Return the operator performing the request.

    The identifier is recorded in ``processed_by`` / ``updated_by`` fields.
    Requests without the header are anonymous.
    """
    if operator_id is None:
        return None
    operator_id = operator_id.strip()
    return operator_id or None
