"""Resource catalog adapters.

Classes:
    ResourceCatalog: Abstract list/delete boundary used by the engine
    InMemoryCatalog: Catalog backed by descriptors or a YAML inventory file
    AWSResourceCatalog: Boto3-backed catalog for ECR, CloudWatch Logs, EBS,
        S3 and ECS
"""

from __future__ import annotations

from src.catalog.aws import AWSResourceCatalog
from src.catalog.base import ResourceCatalog
from src.catalog.memory import InMemoryCatalog

__all__ = [
    "AWSResourceCatalog",
    "InMemoryCatalog",
    "ResourceCatalog",
]
