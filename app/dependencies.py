import secrets
from typing import Annotated

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from starlette import status
from sqlalchemy.orm import Session

from app.config import settings
from app.database import SessionLocal
from app.services.car_service import CarService
from app.services.file_storage import LocalFileStorage

ADMIN_REALM = "SpaceMotorsAdmin"


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_file_storage() -> LocalFileStorage:
    return LocalFileStorage(settings.UPLOADS_DIR)


db_dependency = Annotated[Session, Depends(get_db)]
storage_dependency = Annotated[LocalFileStorage, Depends(get_file_storage)]


def get_car_service(db: db_dependency, storage: storage_dependency) -> CarService:
    return CarService(db, storage)


service_dependency = Annotated[CarService, Depends(get_car_service)]

_basic = HTTPBasic(realm=ADMIN_REALM)


def require_admin(
    credentials: Annotated[HTTPBasicCredentials, Depends(_basic)],
) -> str:
    """Single shared admin credential, compared in constant time."""
    user_ok = secrets.compare_digest(
        credentials.username.encode("utf-8"), settings.ADMIN_USER.encode("utf-8")
    )
    pass_ok = secrets.compare_digest(
        credentials.password.encode("utf-8"), settings.ADMIN_PASS.encode("utf-8")
    )
    if not (user_ok and pass_ok):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not authenticate admin",
            headers={"WWW-Authenticate": f'Basic realm="{ADMIN_REALM}"'},
        )
    return credentials.username


AdminUser = Annotated[str, Depends(require_admin)]
