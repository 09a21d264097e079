import logging
from typing import List, Optional

from app.enums import ResourceStatus
from app.exceptions import InvalidResourceException, ResourceNotFoundException
from app.models import Resource
from app.repositories import ResourceStore

logger = logging.getLogger(__name__)


class ResourceService:
    """Administrative CRUD over bookable resources."""

    def __init__(self, resources: ResourceStore):
        self.resources = resources

    def list(self) -> List[Resource]:
        return self.resources.find_all()

    def get(self, resource_id: str) -> Resource:
        resource = self.resources.find_by_id(resource_id)
        if resource is None:
            raise ResourceNotFoundException(resource_id)
        return resource

    def add(self, name: str, type: str, capacity: int) -> Resource:
        if not name or not name.strip():
            raise InvalidResourceException("Resource name is required", field="name")
        if not type or not type.strip():
            raise InvalidResourceException("Resource type is required", field="type")
        if capacity is None or capacity <= 0:
            raise InvalidResourceException("Valid capacity is required", field="capacity")

        resource = self.resources.save(
            Resource(
                name=name.strip(),
                type=type.strip(),
                capacity=capacity,
                status=ResourceStatus.AVAILABLE,
            )
        )
        logger.info("resource_added", extra={"resource_id": resource.id})
        return resource

    def update(
        self,
        resource_id: str,
        name: Optional[str] = None,
        type: Optional[str] = None,
        capacity: Optional[int] = None,
        status: Optional[ResourceStatus] = None,
    ) -> Resource:
        """Apply the given fields; blank names/types and non-positive capacities are ignored."""
        resource = self.get(resource_id)
        if name and name.strip():
            resource.name = name.strip()
        if type and type.strip():
            resource.type = type.strip()
        if capacity is not None and capacity > 0:
            resource.capacity = capacity
        if status is not None:
            resource.status = ResourceStatus(status)
        resource = self.resources.save(resource)
        logger.info(
            "resource_updated",
            extra={"resource_id": resource.id, "status": resource.status.value},
        )
        return resource

    def delete(self, resource_id: str) -> None:
        if not self.resources.exists_by_id(resource_id):
            raise ResourceNotFoundException(resource_id)
        self.resources.delete_by_id(resource_id)
        logger.info("resource_deleted", extra={"resource_id": resource_id})
