from collections.abc import Mapping
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from app.models.car import City, InsuranceStatus, RepuveStatus, TitleType

# Largest value an INTEGER column holds (signed 64-bit)
MAX_DB_INT = 2**63 - 1


def _drop_blank(data):
    # HTML forms send "" for untouched inputs; treat those as absent
    if isinstance(data, Mapping):
        return {
            key: value
            for key, value in data.items()
            if value is not None and not (isinstance(value, str) and not value.strip())
        }
    return data


class CarBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    price: int = Field(..., ge=0, le=MAX_DB_INT)
    year: int = Field(..., gt=0, le=MAX_DB_INT)
    mileage: int = Field(..., ge=0, le=MAX_DB_INT)
    city: City
    description: Optional[str] = None
    vin: Optional[str] = Field(None, max_length=32)
    owners: Optional[int] = Field(None, ge=0, le=MAX_DB_INT)
    repuve_status: RepuveStatus = RepuveStatus.NO_VERIFICADO
    insurance_status: InsuranceStatus = InsuranceStatus.NORMAL
    title_type: TitleType = TitleType.FACTURA_ORIGINAL
    notes_history: Optional[str] = None

    model_config = ConfigDict(str_strip_whitespace=True)

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data):
        return _drop_blank(data)


class CarCreate(CarBase):
    pass


class CarUpdate(CarBase):
    is_sold: bool = False


class SoldUpdate(BaseModel):
    is_sold: bool


_ENUM_CRITERIA = {
    "city": City,
    "repuve": RepuveStatus,
    "insurance": InsuranceStatus,
}
_INT_CRITERIA = ("min_price", "max_price", "year", "min_year", "limit")


def _to_int(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if not isinstance(value, int):
        try:
            value = int(str(value).strip())
        except ValueError:
            return None
    if not -MAX_DB_INT - 1 <= value <= MAX_DB_INT:
        return None
    return value


class CarFilter(BaseModel):
    """Optional inventory criteria. Unusable values are dropped, never rejected."""

    q: Optional[str] = None
    city: Optional[City] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    year: Optional[int] = None
    min_year: Optional[int] = None
    repuve: Optional[RepuveStatus] = None
    insurance: Optional[InsuranceStatus] = None
    limit: Optional[int] = Field(None, ge=1)

    @model_validator(mode="before")
    @classmethod
    def drop_unusable_criteria(cls, data):
        data = _drop_blank(data)
        if not isinstance(data, Mapping):
            return data

        cleaned = {}
        for key, value in data.items():
            if key in _ENUM_CRITERIA:
                try:
                    value = _ENUM_CRITERIA[key](value)
                except ValueError:
                    continue
            elif key in _INT_CRITERIA:
                value = _to_int(value)
                if value is None or (key == "limit" and value < 1):
                    continue
            elif key == "q":
                value = str(value).strip()
            cleaned[key] = value
        return cleaned


class CarImageResponse(BaseModel):
    id: int
    car_id: int
    filename: str
    is_cover: bool
    sort_order: int

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def url(self) -> str:
        return f"/images/{self.filename}"


class CarSummary(BaseModel):
    id: int
    title: str
    price: int
    year: int
    mileage: int
    city: City
    slug: str
    is_sold: bool
    cover_filename: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CarResponse(CarSummary):
    description: Optional[str] = None
    vin: Optional[str] = None
    owners: Optional[int] = None
    repuve_status: RepuveStatus
    insurance_status: InsuranceStatus
    title_type: TitleType
    notes_history: Optional[str] = None
    created_at: Optional[datetime] = None
    images: List[CarImageResponse] = []


class CarDetailResponse(CarResponse):
    contact_link: Optional[str] = None


class CarWriteResult(BaseModel):
    id: int
    slug: str
    images: List[str] = []
    failed_files: List[str] = []
