from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.dependencies import get_current_principal, get_resource_service, require_admin
from app.enums import ResourceStatus
from app.security import Principal
from app.services import ResourceService

router = APIRouter()


class CreateResourceBody(BaseModel):
    name: str
    type: str
    capacity: int


class UpdateResourceBody(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    capacity: Optional[int] = None
    status: Optional[ResourceStatus] = None


def _resource_out(r):
    return {
        "id": r.id,
        "name": r.name,
        "type": r.type,
        "capacity": r.capacity,
        "status": r.status.value,
    }


@router.get("")
def list_resources(
    _: Principal = Depends(get_current_principal),
    service: ResourceService = Depends(get_resource_service),
):
    return [_resource_out(r) for r in service.list()]


@router.post("", status_code=201)
def add_resource(
    body: CreateResourceBody,
    _: Principal = Depends(require_admin),
    service: ResourceService = Depends(get_resource_service),
):
    return _resource_out(service.add(body.name, body.type, body.capacity))


@router.put("/{resource_id}")
def update_resource(
    resource_id: str,
    body: UpdateResourceBody,
    _: Principal = Depends(require_admin),
    service: ResourceService = Depends(get_resource_service),
):
    resource = service.update(
        resource_id,
        name=body.name,
        type=body.type,
        capacity=body.capacity,
        status=body.status,
    )
    return _resource_out(resource)


@router.delete("/{resource_id}", status_code=204)
def delete_resource(
    resource_id: str,
    _: Principal = Depends(require_admin),
    service: ResourceService = Depends(get_resource_service),
):
    service.delete(resource_id)
