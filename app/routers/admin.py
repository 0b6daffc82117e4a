from typing import Dict, List, Tuple

from fastapi import APIRouter, Depends, Request, Response
from starlette import status
from starlette.datastructures import UploadFile

from app.dependencies import require_admin, service_dependency
from app.limits import admin_rate_limit, limiter
from app.schemas.car import CarSummary, CarWriteResult, SoldUpdate

router = APIRouter(
    prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)]
)


async def _read_form(request: Request) -> Tuple[Dict[str, str], List[UploadFile]]:
    """Split a multipart listing form into plain fields and ``photos`` files."""
    form = await request.form()
    payload = {
        key: value for key, value in form.items() if not isinstance(value, UploadFile)
    }
    photos = [item for item in form.getlist("photos") if isinstance(item, UploadFile)]
    return payload, photos


@router.post(
    "/nuevo", response_model=CarWriteResult, status_code=status.HTTP_201_CREATED
)
@limiter.limit(admin_rate_limit)
async def create_car(request: Request, service: service_dependency):
    payload, photos = await _read_form(request)
    return await service.create_car(payload, photos)


@router.put("/cars/{car_id}", response_model=CarWriteResult)
@limiter.limit(admin_rate_limit)
async def update_car(request: Request, service: service_dependency, car_id: int):
    payload, photos = await _read_form(request)
    return await service.update_car(car_id, payload, photos)


@router.patch("/cars/{car_id}/sold", response_model=CarSummary)
async def set_sold(service: service_dependency, car_id: int, body: SoldUpdate):
    return service.set_sold(car_id, body.is_sold)


@router.post(
    "/cars/{car_id}/images",
    response_model=CarWriteResult,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(admin_rate_limit)
async def attach_images(request: Request, service: service_dependency, car_id: int):
    _, photos = await _read_form(request)
    return await service.attach_images(car_id, photos)


@router.delete("/cars/{car_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_car(service: service_dependency, car_id: int):
    service.delete_car(car_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/images/{image_id}", status_code=status.HTTP_204_NO_CONTENT)
async def detach_image(service: service_dependency, image_id: int):
    service.detach_image(image_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
