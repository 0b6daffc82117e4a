import logging
import time
from collections.abc import Mapping
from typing import Callable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import ConflictError, StorageIOError, ValidationError
from app.models.car import Car
from app.models.car_image import CarImage
from app.schemas.car import CarCreate, CarUpdate, CarWriteResult
from app.services.car_filter import compose_filter
from app.services.car_repository import CarRepository
from app.services.file_storage import LocalFileStorage, sanitize_filename
from app.services.slug import make_slug

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class CarService:
    """Create, edit, sell and delete listings and keep their photo files in step.

    Mutations that carry files are coroutines: each file write is awaited
    before its photo row is recorded, in upload order.
    """

    def __init__(
        self,
        db: Session,
        storage=None,
        clock: Optional[Callable[[], int]] = None,
        max_files: Optional[int] = None,
    ):
        self.db = db
        self.repository = CarRepository(db)
        self.storage = storage or LocalFileStorage()
        self.clock = clock or _now_ms
        self.max_files = settings.MAX_UPLOAD_FILES if max_files is None else max_files

    # ---- validation ----

    @staticmethod
    def _validate(schema, payload):
        if isinstance(payload, schema):
            return payload
        if isinstance(payload, BaseModel):
            payload = payload.model_dump()
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValidationError("Listing data must be a mapping")
        try:
            return schema.model_validate(dict(payload))
        except PydanticValidationError as exc:
            details = [
                {
                    "field": ".".join(str(part) for part in error["loc"]),
                    "message": error["msg"],
                }
                for error in exc.errors()
            ]
            raise ValidationError("Invalid listing data", details=details) from exc

    # ---- listings ----

    async def create_car(self, payload, files: Sequence = ()) -> CarWriteResult:
        data = self._validate(CarCreate, payload).model_dump()
        car = self._insert_with_slug(data)
        logger.info("Created car %s (%s)", car.id, car.slug)

        stored, failed = await self._store_files(car.id, files)
        return CarWriteResult(
            id=car.id, slug=car.slug, images=stored, failed_files=failed
        )

    def _insert_with_slug(self, data: dict) -> Car:
        disambiguator = self.clock()
        try:
            return self.repository.insert_car(
                {**data, "slug": make_slug(data["title"], disambiguator)}
            )
        except ConflictError:
            retry = max(self.clock(), disambiguator + 1)
            logger.warning(
                "Slug collision for %r, retrying with disambiguator %s",
                data["title"],
                retry,
            )
            return self.repository.insert_car(
                {**data, "slug": make_slug(data["title"], retry)}
            )

    async def update_car(
        self, car_id: int, payload, files: Sequence = ()
    ) -> CarWriteResult:
        data = self._validate(CarUpdate, payload).model_dump()
        car = self.repository.update_car(car_id, data)
        logger.info("Updated car %s", car.id)

        stored, failed = await self._store_files(car.id, files)
        return CarWriteResult(
            id=car.id, slug=car.slug, images=stored, failed_files=failed
        )

    def set_sold(self, car_id: int, is_sold: bool) -> Car:
        car = self.repository.update_car(car_id, {"is_sold": bool(is_sold)})
        logger.info("Car %s marked %s", car.id, "sold" if car.is_sold else "available")
        return car

    def delete_car(self, car_id: int) -> None:
        filenames = self.repository.delete_car(car_id)
        logger.info("Deleted car %s with %d photos", car_id, len(filenames))
        for filename in filenames:
            self._remove_file(filename)

    # ---- photos ----

    async def attach_images(self, car_id: int, files: Sequence) -> CarWriteResult:
        car = self.repository.get_car_by_id(car_id)
        stored, failed = await self._store_files(car.id, files)
        return CarWriteResult(
            id=car.id, slug=car.slug, images=stored, failed_files=failed
        )

    def detach_image(self, image_id: int) -> None:
        image = self.repository.get_image(image_id)
        self._remove_file(image.filename)
        self.repository.delete_image(image_id)
        logger.info("Detached image %s from car %s", image_id, image.car_id)

    def list_images(self, car_id: int) -> List[CarImage]:
        return self.repository.list_images(car_id)

    async def _store_files(self, car_id: int, files: Sequence) -> Tuple[List[str], List[str]]:
        uploads = [f for f in (files or []) if getattr(f, "filename", None)]
        if len(uploads) > self.max_files:
            logger.info(
                "Ignoring %d photos over the limit of %d",
                len(uploads) - self.max_files,
                self.max_files,
            )
            uploads = uploads[: self.max_files]

        stored, failed = [], []
        for upload in uploads:
            try:
                filename = await self.storage.save(
                    upload, sanitize_filename(upload.filename)
                )
            except StorageIOError as exc:
                logger.warning("Photo %s for car %s not stored: %s", upload.filename, car_id, exc)
                failed.append(upload.filename)
                continue
            self.repository.insert_image(car_id, filename)
            stored.append(filename)
        return stored, failed

    def _remove_file(self, filename: str) -> None:
        # Best effort: the row goes away even if the file cannot be removed
        try:
            if not self.storage.delete(filename):
                logger.info("Photo file %s was already gone", filename)
        except StorageIOError as exc:
            logger.warning("Could not remove photo file %s: %s", filename, exc)

    # ---- reads ----

    def get_car(self, slug: str) -> Car:
        return self.repository.get_car_by_slug(slug)

    def get_car_by_id(self, car_id: int) -> Car:
        return self.repository.get_car_by_id(car_id)

    def search(self, criteria=None) -> List[Car]:
        return self.repository.list_cars(compose_filter(criteria))

    def recent(self, limit: Optional[int] = None) -> List[Car]:
        return self.search({"limit": limit or settings.RECENT_LIMIT})
