"""Reset the catalog and insert the sample Mazda 3.

Run with ``python -m app.seed``. Photo rows point at ``mazda3/1.jpg`` ..
``mazda3/3.jpg`` under the upload directory; the files themselves are not
created.
"""

import logging
import time

from sqlalchemy import delete

from app.database import SessionLocal, init_db
from app.models.car import Car, City, InsuranceStatus, RepuveStatus, TitleType
from app.models.car_image import CarImage
from app.services.car_repository import CarRepository
from app.services.slug import make_slug

logger = logging.getLogger(__name__)

SAMPLE_CAR = {
    "title": "Mazda 3 i Touring",
    "price": 158000,
    "year": 2017,
    "mileage": 78500,
    "city": City.CIUDAD_DE_MEXICO,
    "description": "Muy cuidado, servicios al día",
    "vin": "JM1BN123456789000",
    "owners": 1,
    "repuve_status": RepuveStatus.LIMPIO,
    "insurance_status": InsuranceStatus.NORMAL,
    "title_type": TitleType.FACTURA_ORIGINAL,
    "notes_history": "Sin observaciones",
    "is_sold": False,
}
SAMPLE_IMAGES = ("mazda3/1.jpg", "mazda3/2.jpg", "mazda3/3.jpg")


def seed(db) -> Car:
    db.execute(delete(CarImage))
    db.execute(delete(Car))
    db.commit()

    repository = CarRepository(db)
    car = repository.insert_car(
        {
            **SAMPLE_CAR,
            "slug": make_slug(SAMPLE_CAR["title"], int(time.time() * 1000)),
        }
    )
    for index, filename in enumerate(SAMPLE_IMAGES):
        repository.insert_image(car.id, filename, is_cover=index == 0)
    return car


def main():
    logging.basicConfig(level=logging.INFO)
    init_db()
    db = SessionLocal()
    try:
        car = seed(db)
        logger.info("Seeded %s with id %s (%s)", car.title, car.id, car.slug)
    finally:
        db.close()


if __name__ == "__main__":
    main()
