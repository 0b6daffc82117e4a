import asyncio
import re

import pytest
from sqlalchemy import func, select

from app.exceptions import ConflictError, NotFoundError, StorageIOError, ValidationError
from app.models.car import Car, RepuveStatus
from app.models.car_image import CarImage
from app.services.car_service import CarService
from app.services.file_storage import LocalFileStorage


class FlakyStorage(LocalFileStorage):
    """Fails to write any upload whose name contains "bad"."""

    async def save(self, upload, destination):
        if "bad" in destination:
            raise StorageIOError(f"disk full while writing {destination}")
        return await super().save(upload, destination)


class BrokenDeleteStorage(LocalFileStorage):
    def delete(self, filename):
        raise StorageIOError(f"permission denied for {filename}")


def _car_count(db):
    return db.execute(select(func.count(Car.id))).scalar_one()


def test_create_car_with_photos(service, db_session, upload_dir, mazda_payload, make_upload):
    files = [make_upload(f"{n}.jpg", f"photo {n}".encode()) for n in (1, 2, 3)]
    result = asyncio.run(service.create_car(mazda_payload(), files))

    assert re.fullmatch(r"mazda-3-i-touring-\d+", result.slug)
    assert result.failed_files == []

    car = service.get_car(result.slug)
    assert car.id == result.id
    assert car.is_sold is False
    assert car.repuve_status is RepuveStatus.NO_VERIFICADO

    images = service.list_images(car.id)
    assert [image.filename for image in images] == result.images
    assert [image.filename.rsplit("-", 1)[-1] for image in images] == [
        "1.jpg",
        "2.jpg",
        "3.jpg",
    ]
    assert images[0].id < images[1].id < images[2].id
    assert car.cover_filename == images[0].filename
    assert (upload_dir / images[1].filename).read_bytes() == b"photo 2"


def test_create_car_coerces_form_strings(service, mazda_payload):
    payload = mazda_payload(
        price="158000", year="2017", mileage="78500", owners="", vin="", repuve_status=""
    )
    result = asyncio.run(service.create_car(payload))
    car = service.get_car_by_id(result.id)
    assert car.price == 158000
    assert car.owners is None
    assert car.vin is None
    assert car.repuve_status is RepuveStatus.NO_VERIFICADO


def test_invalid_city_writes_nothing(service, db_session, upload_dir, mazda_payload, make_upload):
    with pytest.raises(ValidationError):
        asyncio.run(
            service.create_car(mazda_payload(city="Invalid City"), [make_upload("a.jpg")])
        )
    assert _car_count(db_session) == 0
    assert list(upload_dir.iterdir()) == []


@pytest.mark.parametrize(
    "overrides",
    [
        {"price": "12abc"},
        {"price": -1},
        {"year": 0},
        {"mileage": -5},
        {"title": "   "},
        {"insurance_status": "Robado"},
        {"price": 10**20},
        {"owners": 2**63},
    ],
)
def test_malformed_payloads_are_rejected(service, db_session, mazda_payload, overrides):
    with pytest.raises(ValidationError):
        asyncio.run(service.create_car(mazda_payload(**overrides)))
    assert _car_count(db_session) == 0


def test_missing_required_fields_are_reported(service):
    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(service.create_car({"title": "Mazda"}))
    fields = {error["field"] for error in excinfo.value.details}
    assert {"price", "year", "mileage", "city"} <= fields


def test_create_caps_photos_at_ten(service, mazda_payload, make_upload):
    files = [make_upload(f"{n}.jpg") for n in range(12)]
    result = asyncio.run(service.create_car(mazda_payload(), files))
    assert len(result.images) == 10
    assert len(service.list_images(result.id)) == 10


def test_uploads_without_a_name_are_skipped(service, mazda_payload, make_upload):
    result = asyncio.run(service.create_car(mazda_payload(), [make_upload("")]))
    assert result.images == []


def test_failed_photo_write_is_partial_success(db_session, upload_dir, clock, mazda_payload, make_upload):
    service = CarService(db_session, FlakyStorage(str(upload_dir)), clock=clock)
    files = [make_upload("good1.jpg"), make_upload("bad.jpg"), make_upload("good2.jpg")]
    result = asyncio.run(service.create_car(mazda_payload(), files))

    assert result.failed_files == ["bad.jpg"]
    assert len(result.images) == 2
    assert [image.filename for image in service.list_images(result.id)] == result.images
    assert service.get_car_by_id(result.id).title == "Mazda 3 i Touring"


def test_slug_collision_is_retried_once(db_session, storage, mazda_payload):
    service = CarService(db_session, storage, clock=lambda: 1000)
    first = asyncio.run(service.create_car(mazda_payload()))
    second = asyncio.run(service.create_car(mazda_payload()))
    assert first.slug == "mazda-3-i-touring-1000"
    assert second.slug == "mazda-3-i-touring-1001"

    with pytest.raises(ConflictError):
        asyncio.run(service.create_car(mazda_payload()))
    assert _car_count(db_session) == 2


def test_slugs_are_not_reused_after_delete(service, mazda_payload):
    first = asyncio.run(service.create_car(mazda_payload()))
    service.delete_car(first.id)
    second = asyncio.run(service.create_car(mazda_payload()))
    assert second.slug != first.slug


def test_update_overwrites_fields_and_appends_photos(service, mazda_payload, make_upload):
    created = asyncio.run(service.create_car(mazda_payload(), [make_upload("1.jpg")]))
    payload = mazda_payload(
        title="Mazda 3 i Touring Sedan",
        price="149000",
        city="Estado de Mexico",
        is_sold="on",
    )
    updated = asyncio.run(service.update_car(created.id, payload, [make_upload("2.jpg")]))

    assert updated.slug == created.slug
    car = service.get_car_by_id(created.id)
    assert car.title == "Mazda 3 i Touring Sedan"
    assert car.price == 149000
    assert car.is_sold is True
    images = service.list_images(created.id)
    assert len(images) == 2
    assert images[0].filename == created.images[0]


def test_update_rejects_bad_enum_and_keeps_row(service, mazda_payload):
    created = asyncio.run(service.create_car(mazda_payload()))
    with pytest.raises(ValidationError):
        asyncio.run(service.update_car(created.id, mazda_payload(title_type="Pirata")))
    assert service.get_car_by_id(created.id).title_type.value == "Factura original"


def test_update_missing_car(service, mazda_payload):
    with pytest.raises(NotFoundError):
        asyncio.run(service.update_car(404, mazda_payload()))


def test_set_sold_toggles(service, mazda_payload):
    created = asyncio.run(service.create_car(mazda_payload()))
    assert service.set_sold(created.id, True).is_sold is True
    assert service.set_sold(created.id, False).is_sold is False


def test_attach_images(service, mazda_payload, make_upload):
    created = asyncio.run(service.create_car(mazda_payload()))
    result = asyncio.run(service.attach_images(created.id, [make_upload("x.jpg")]))
    assert len(service.list_images(created.id)) == 1
    assert result.slug == created.slug
    with pytest.raises(NotFoundError):
        asyncio.run(service.attach_images(999, [make_upload("x.jpg")]))


def test_delete_car_removes_rows_and_files(service, db_session, upload_dir, mazda_payload, make_upload):
    created = asyncio.run(
        service.create_car(mazda_payload(), [make_upload("1.jpg"), make_upload("2.jpg")])
    )
    service.delete_car(created.id)

    with pytest.raises(NotFoundError):
        service.get_car_by_id(created.id)
    remaining = db_session.execute(
        select(func.count(CarImage.id)).where(CarImage.car_id == created.id)
    ).scalar_one()
    assert remaining == 0
    assert list(upload_dir.iterdir()) == []


def test_delete_car_survives_file_errors(db_session, upload_dir, clock, mazda_payload, make_upload):
    service = CarService(db_session, BrokenDeleteStorage(str(upload_dir)), clock=clock)
    created = asyncio.run(service.create_car(mazda_payload(), [make_upload("1.jpg")]))
    service.delete_car(created.id)
    assert _car_count(db_session) == 0


def test_delete_missing_car(service):
    with pytest.raises(NotFoundError):
        service.delete_car(999)


def test_detach_image(service, upload_dir, mazda_payload, make_upload):
    created = asyncio.run(
        service.create_car(mazda_payload(), [make_upload("1.jpg"), make_upload("2.jpg")])
    )
    first, second = service.list_images(created.id)
    service.detach_image(first.id)

    assert [image.id for image in service.list_images(created.id)] == [second.id]
    assert not (upload_dir / created.images[0]).exists()
    assert (upload_dir / created.images[1]).exists()


def test_detach_image_when_file_is_already_gone(service, upload_dir, mazda_payload, make_upload):
    created = asyncio.run(service.create_car(mazda_payload(), [make_upload("1.jpg")]))
    (upload_dir / created.images[0]).unlink()
    image = service.list_images(created.id)[0]
    service.detach_image(image.id)
    assert service.list_images(created.id) == []


def test_detach_missing_image(service):
    with pytest.raises(NotFoundError):
        service.detach_image(12345)


def test_recent_limits_results(service, mazda_payload):
    for n in range(8):
        asyncio.run(service.create_car(mazda_payload(title=f"Car {n}")))
    recent = service.recent()
    assert len(recent) == 6
    assert recent[0].title == "Car 7"
    assert len(service.search()) == 8
