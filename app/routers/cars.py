from typing import List, Optional

from fastapi import APIRouter, Query
from starlette import status

from app.config import settings
from app.dependencies import service_dependency
from app.schemas.car import CarDetailResponse, CarResponse, CarSummary
from app.services.contact_link import format_contact_link

router = APIRouter(tags=["cars"])


@router.get("/", response_model=List[CarSummary], status_code=status.HTTP_200_OK)
async def home(service: service_dependency):
    """Most recent listings for the landing page."""
    return service.recent()


@router.get("/inventario", response_model=List[CarSummary])
async def inventory(
    service: service_dependency,
    q: Optional[str] = Query(None, description="Search in title and description"),
    ciudad: Optional[str] = Query(None, description="Exact city"),
    min_price: Optional[str] = Query(None, alias="min", description="Minimum price"),
    max_price: Optional[str] = Query(None, alias="max", description="Maximum price"),
    year: Optional[str] = Query(None, description="Exact model year"),
    min_year: Optional[str] = Query(None, description="Minimum model year"),
    repuve: Optional[str] = Query(None, description="REPUVE status"),
    insurance: Optional[str] = Query(None, description="Insurance status"),
):
    """
    Filterable inventory, newest first.

    Every filter is optional; invalid values are ignored instead of rejected.
    """
    return service.search(
        {
            "q": q,
            "city": ciudad,
            "min_price": min_price,
            "max_price": max_price,
            "year": year,
            "min_year": min_year,
            "repuve": repuve,
            "insurance": insurance,
        }
    )


@router.get("/auto/{slug}", response_model=CarDetailResponse)
async def car_detail(service: service_dependency, slug: str):
    car = service.get_car(slug)
    detail = CarDetailResponse.model_validate(car)
    detail.contact_link = format_contact_link(car, settings.WHATSAPP_PHONE)
    return detail


@router.get("/api/cars", response_model=List[CarResponse])
async def list_cars(service: service_dependency):
    return service.search()
