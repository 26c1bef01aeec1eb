"""Boto3 client factory."""

from __future__ import annotations

from typing import Any, Optional

import boto3
from botocore.config import Config as BotoConfig

# Botocore retries throttling and 5xx responses on its own; the cleanup
# executor layers its own attempts on top for delete calls.
DEFAULT_BOTO_CONFIG = BotoConfig(
    retries={"max_attempts": 5, "mode": "standard"},
    connect_timeout=10,
    read_timeout=60,
)


def create_boto_client(
    service_name: str,
    region_name: Optional[str] = None,
    profile_name: Optional[str] = None,
) -> Any:
    """Create a boto3 client for a service.

    A new session is built on every call; callers cache the clients they reuse.

    Args:
        service_name: AWS service name (e.g., "ecr", "logs")
        region_name: AWS region (optional, falls back to session default)
        profile_name: AWS profile name (optional)

    Returns:
        Boto3 service client
    """
    session = boto3.Session(profile_name=profile_name, region_name=region_name)
    return session.client(service_name, config=DEFAULT_BOTO_CONFIG)
