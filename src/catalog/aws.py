"""AWS resource catalog.

Lists and deletes the artifacts a build/deploy pipeline leaves behind:

    IMAGE              ECR images in configured repositories
    LOG_GROUP          CloudWatch Logs log groups
    SNAPSHOT           EBS snapshots owned by the account
    OBJECT             S3 objects in configured buckets
    DEPLOYMENT_RECORD  ECS task definition revisions of configured families
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from src.aws.client import create_boto_client
from src.catalog.base import ResourceCatalog
from src.errors import CatalogUnavailable, ResourceNotFound, TransientError
from src.models.resource import Environment, ResourceDescriptor, ResourceKind

GIB = 1024**3


class AWSResourceCatalog(ResourceCatalog):
    """Boto3-backed resource catalog for a single region.

    Log groups and snapshots take their environment from a tag (default
    ``Environment``). Repositories, buckets and task families are mapped to
    an environment explicitly, since their contents are not tagged
    individually.

    Attributes:
        region: AWS region
        aws_profile: AWS profile name (optional)
        environment_tag: Tag key holding the environment name
        repositories: ECR repository name -> environment
        buckets: S3 bucket name -> environment
        task_families: ECS task definition family -> environment
    """

    # Kind -> (service, list method, delete method)
    KIND_METHODS = {
        ResourceKind.IMAGE: ("ecr", "_list_images", "_delete_image"),
        ResourceKind.LOG_GROUP: ("logs", "_list_log_groups", "_delete_log_group"),
        ResourceKind.SNAPSHOT: ("ec2", "_list_snapshots", "_delete_snapshot"),
        ResourceKind.OBJECT: ("s3", "_list_objects", "_delete_object"),
        ResourceKind.DEPLOYMENT_RECORD: ("ecs", "_list_task_definitions", "_delete_task_definition"),
    }

    NOT_FOUND_CODES = {
        "ImageNotFound",
        "RepositoryNotFoundException",
        "ResourceNotFoundException",
        "InvalidSnapshot.NotFound",
        "NoSuchKey",
        "NoSuchBucket",
    }

    def __init__(
        self,
        region: Optional[str] = None,
        aws_profile: Optional[str] = None,
        environment_tag: str = "Environment",
        repositories: Optional[dict[str, Environment]] = None,
        buckets: Optional[dict[str, Environment]] = None,
        task_families: Optional[dict[str, Environment]] = None,
    ) -> None:
        super().__init__()
        self.region = region
        self.aws_profile = aws_profile
        self.environment_tag = environment_tag
        self.repositories = repositories or {}
        self.buckets = buckets or {}
        self.task_families = task_families or {}
        self._clients: dict[str, Any] = {}
        self._clients_lock = threading.Lock()

    def list(self, kind: ResourceKind, environment: Environment) -> list[ResourceDescriptor]:
        service, list_method, _ = self.KIND_METHODS[kind]
        lister: Callable[[Any, Environment], list[ResourceDescriptor]] = getattr(self, list_method)

        try:
            resources = lister(self._client(service), environment)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            raise CatalogUnavailable(f"Listing {kind.value} in {self.region or 'default region'} failed: {error_code}")
        except BotoCoreError as e:
            raise CatalogUnavailable(f"Listing {kind.value} in {self.region or 'default region'} failed: {e}")

        # Pagination can repeat entries when the listing shifts between pages
        unique: dict[str, ResourceDescriptor] = {}
        for resource in resources:
            unique.setdefault(resource.identifier, resource)

        self.logger.debug(f"Listed {len(unique)} {kind.value} resources for {environment.value}")
        return list(unique.values())

    def delete(self, resource: ResourceDescriptor) -> None:
        service, _, delete_method = self.KIND_METHODS[resource.kind]
        deleter: Callable[[Any, ResourceDescriptor], None] = getattr(self, delete_method)

        try:
            deleter(self._client(service), resource)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            error_message = e.response.get("Error", {}).get("Message", str(e))
            if error_code in self.NOT_FOUND_CODES:
                raise ResourceNotFound(f"{resource.identifier} already deleted")
            raise TransientError(f"{error_code}: {error_message}", error_code=error_code)
        except BotoCoreError as e:
            raise TransientError(f"Unexpected error: {e}")

        self.logger.info(f"Deleted {resource.kind.value} {resource.identifier}")

    def _client(self, service: str) -> Any:
        with self._clients_lock:
            if service not in self._clients:
                self._clients[service] = create_boto_client(
                    service_name=service,
                    region_name=self.region,
                    profile_name=self.aws_profile,
                )
            return self._clients[service]

    def _environment_from_tags(self, tags: dict[str, str]) -> Optional[Environment]:
        value = tags.get(self.environment_tag)
        if value is None:
            return None
        try:
            return Environment.parse(value)
        except ValueError:
            self.logger.debug(f"Ignoring unknown {self.environment_tag} tag value: {value}")
            return None

    # ECR

    def _list_images(self, client: Any, environment: Environment) -> list[ResourceDescriptor]:
        resources = []
        for repository, repo_env in sorted(self.repositories.items()):
            if repo_env != environment:
                continue

            paginator = client.get_paginator("describe_images")
            for page in paginator.paginate(repositoryName=repository):
                for image in page.get("imageDetails", []):
                    resources.append(
                        ResourceDescriptor(
                            kind=ResourceKind.IMAGE,
                            identifier=f"{repository}@{image['imageDigest']}",
                            created_at=_as_utc(image["imagePushedAt"]),
                            environment=environment,
                            tags=frozenset(image.get("imageTags", [])),
                            size_bytes=image.get("imageSizeInBytes"),
                            location=repository,
                        )
                    )
        return resources

    def _delete_image(self, client: Any, resource: ResourceDescriptor) -> None:
        digest = resource.identifier.split("@", 1)[1]
        response = client.batch_delete_image(
            repositoryName=resource.location,
            imageIds=[{"imageDigest": digest}],
        )

        # batch_delete_image reports per-image failures instead of raising
        for failure in response.get("failures", []):
            code = failure.get("failureCode", "Unknown")
            if code == "ImageNotFound":
                raise ResourceNotFound(f"{resource.identifier} already deleted")
            raise TransientError(f"{code}: {failure.get('failureReason', '')}", error_code=code)

    # CloudWatch Logs

    def _list_log_groups(self, client: Any, environment: Environment) -> list[ResourceDescriptor]:
        resources = []
        paginator = client.get_paginator("describe_log_groups")
        for page in paginator.paginate():
            for group in page.get("logGroups", []):
                arn = group["arn"]
                if arn.endswith(":*"):
                    arn = arn[:-2]
                tags = client.list_tags_for_resource(resourceArn=arn).get("tags", {})
                if self._environment_from_tags(tags) != environment:
                    continue

                resources.append(
                    ResourceDescriptor(
                        kind=ResourceKind.LOG_GROUP,
                        identifier=group["logGroupName"],
                        created_at=datetime.fromtimestamp(group["creationTime"] / 1000, tz=timezone.utc),
                        environment=environment,
                        tags=_tag_strings(tags),
                        size_bytes=group.get("storedBytes"),
                        location=self.region,
                    )
                )
        return resources

    def _delete_log_group(self, client: Any, resource: ResourceDescriptor) -> None:
        client.delete_log_group(logGroupName=resource.identifier)

    # EBS snapshots

    def _list_snapshots(self, client: Any, environment: Environment) -> list[ResourceDescriptor]:
        resources = []
        paginator = client.get_paginator("describe_snapshots")
        for page in paginator.paginate(OwnerIds=["self"]):
            for snapshot in page.get("Snapshots", []):
                tags = {tag["Key"]: tag["Value"] for tag in snapshot.get("Tags", [])}
                if self._environment_from_tags(tags) != environment:
                    continue

                volume_size = snapshot.get("VolumeSize")
                resources.append(
                    ResourceDescriptor(
                        kind=ResourceKind.SNAPSHOT,
                        identifier=snapshot["SnapshotId"],
                        created_at=_as_utc(snapshot["StartTime"]),
                        environment=environment,
                        tags=_tag_strings(tags),
                        size_bytes=volume_size * GIB if volume_size is not None else None,
                        location=self.region,
                    )
                )
        return resources

    def _delete_snapshot(self, client: Any, resource: ResourceDescriptor) -> None:
        client.delete_snapshot(SnapshotId=resource.identifier)

    # S3

    def _list_objects(self, client: Any, environment: Environment) -> list[ResourceDescriptor]:
        resources = []
        for bucket, bucket_env in sorted(self.buckets.items()):
            if bucket_env != environment:
                continue

            paginator = client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=bucket):
                for obj in page.get("Contents", []):
                    resources.append(
                        ResourceDescriptor(
                            kind=ResourceKind.OBJECT,
                            identifier=f"{bucket}/{obj['Key']}",
                            created_at=_as_utc(obj["LastModified"]),
                            environment=environment,
                            size_bytes=obj.get("Size"),
                            location=bucket,
                        )
                    )
        return resources

    def _delete_object(self, client: Any, resource: ResourceDescriptor) -> None:
        key = resource.identifier[len(f"{resource.location}/"):]
        client.delete_object(Bucket=resource.location, Key=key)

    # ECS task definitions

    def _list_task_definitions(self, client: Any, environment: Environment) -> list[ResourceDescriptor]:
        resources = []
        for family, family_env in sorted(self.task_families.items()):
            if family_env != environment:
                continue

            paginator = client.get_paginator("list_task_definitions")
            for page in paginator.paginate(familyPrefix=family, status="ACTIVE"):
                for arn in page.get("taskDefinitionArns", []):
                    described = client.describe_task_definition(taskDefinition=arn, include=["TAGS"])
                    definition = described["taskDefinition"]
                    tags = {tag["key"]: tag["value"] for tag in described.get("tags", [])}

                    resources.append(
                        ResourceDescriptor(
                            kind=ResourceKind.DEPLOYMENT_RECORD,
                            identifier=f"{definition['family']}:{definition['revision']}",
                            created_at=_as_utc(definition["registeredAt"]),
                            environment=environment,
                            tags=_tag_strings(tags),
                            location=arn,
                        )
                    )
        return resources

    def _delete_task_definition(self, client: Any, resource: ResourceDescriptor) -> None:
        client.deregister_task_definition(taskDefinition=resource.location or resource.identifier)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _tag_strings(tags: dict[str, str]) -> frozenset:
    """Flatten key/value tags into the strings protected patterns test.

    Each tag contributes its value and its ``key=value`` form, so both
    ``*-backup`` and ``Retain=*`` style patterns can match.
    """
    strings = set()
    for key, value in tags.items():
        strings.add(f"{key}={value}")
        if value:
            strings.add(value)
    return frozenset(strings)
