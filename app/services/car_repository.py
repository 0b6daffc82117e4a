import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.car import Car
from app.models.car_image import CarImage
from app.services.car_filter import CarPredicate, compose_filter

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "price", "year", "mileage", "city")

# Fields an update may overwrite; id, slug and created_at never change
MUTABLE_FIELDS = (
    "title",
    "price",
    "year",
    "mileage",
    "city",
    "description",
    "vin",
    "owners",
    "repuve_status",
    "insurance_status",
    "title_type",
    "notes_history",
    "is_sold",
)


class CarRepository:
    """Persistence for listings (``cars``) and their photos (``images``).

    Every write commits on its own. Enum fields are checked by the model
    validators before anything reaches the database.
    """

    def __init__(self, db: Session):
        self.db = db

    def _commit(self):
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if "slug" in str(exc.orig).lower():
                raise ConflictError("Slug already in use") from exc
            raise

    # ---- listings ----

    def insert_car(self, values: dict) -> Car:
        missing = [
            key for key in REQUIRED_FIELDS if values.get(key) is None or values.get(key) == ""
        ]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details=[{"field": key, "message": "Field required"} for key in missing],
            )
        car = Car(**values)
        if not car.slug:
            raise ValueError("A listing cannot be stored without a slug")
        self.db.add(car)
        self._commit()
        self.db.refresh(car)
        return car

    def update_car(self, car_id: int, values: dict) -> Car:
        car = self.get_car_by_id(car_id)
        try:
            for key, value in values.items():
                if key in MUTABLE_FIELDS:
                    setattr(car, key, value)
        except Exception:
            self.db.rollback()
            raise
        self._commit()
        self.db.refresh(car)
        return car

    def delete_car(self, car_id: int) -> List[str]:
        """Delete a listing and its photos in one commit; return the photo filenames."""
        car = self.get_car_by_id(car_id)
        filenames = [image.filename for image in car.images]
        self.db.delete(car)
        self._commit()
        return filenames

    def get_car_by_id(self, car_id: int) -> Car:
        car = self.db.get(Car, car_id)
        if car is None:
            raise NotFoundError(f"Car with ID {car_id} not found")
        return car

    def get_car_by_slug(self, slug: str) -> Car:
        car = self.db.execute(
            select(Car).where(Car.slug == slug)
        ).scalar_one_or_none()
        if car is None:
            raise NotFoundError(f"Car {slug!r} not found")
        return car

    def list_cars(self, predicate: Optional[CarPredicate] = None) -> List[Car]:
        if predicate is None:
            predicate = compose_filter()
        return list(self.db.execute(predicate.statement()).scalars().all())

    # ---- photos ----

    def insert_image(self, car_id: int, filename: str, is_cover: bool = False) -> CarImage:
        # Next free position, so a new photo never sorts ahead of an older one
        position = self.db.execute(
            select(func.coalesce(func.max(CarImage.sort_order), -1) + 1).where(
                CarImage.car_id == car_id
            )
        ).scalar_one()
        image = CarImage(
            car_id=car_id, filename=filename, is_cover=is_cover, sort_order=position
        )
        self.db.add(image)
        self._commit()
        self.db.refresh(image)
        return image

    def get_image(self, image_id: int) -> CarImage:
        image = self.db.get(CarImage, image_id)
        if image is None:
            raise NotFoundError(f"Image with id {image_id} not found")
        return image

    def delete_image(self, image_id: int) -> CarImage:
        image = self.get_image(image_id)
        self.db.delete(image)
        self._commit()
        return image

    def list_images(self, car_id: int) -> List[CarImage]:
        return list(
            self.db.execute(
                select(CarImage)
                .where(CarImage.car_id == car_id)
                .order_by(CarImage.sort_order, CarImage.id)
            )
            .scalars()
            .all()
        )
