"""Publishable key extraction for the lead ingestion path."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

PUBLIC_KEY_HEADER_NAME = "X-NXL-Public-Key"

PUBLIC_KEY_HEADER = APIKeyHeader(name=PUBLIC_KEY_HEADER_NAME, auto_error=False)


async def get_publishable_key(
    key_header: str | None = Depends(PUBLIC_KEY_HEADER),
) -> str:
    """Extract the tenant's publishable key; tenant resolution happens in the core."""
    key = (key_header or "").strip()
    if not key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {PUBLIC_KEY_HEADER_NAME}",
        )
    return key


# Type alias for dependency injection
PublishableKeyDep = Annotated[str, Depends(get_publishable_key)]
