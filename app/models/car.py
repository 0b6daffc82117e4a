from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    Enum,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship, validates
from app.database import Base
from app.exceptions import ValidationError
import enum


class City(str, enum.Enum):
    CIUDAD_DE_MEXICO = "Ciudad de Mexico"
    ESTADO_DE_MEXICO = "Estado de Mexico"


class RepuveStatus(str, enum.Enum):
    LIMPIO = "Limpio"
    CON_REPORTE = "Con reporte"
    NO_VERIFICADO = "No verificado"


class InsuranceStatus(str, enum.Enum):
    NORMAL = "Normal"
    PERDIDA_TOTAL = "Perdida total"
    RESCATADO = "Rescatado"
    ASEGURADORA = "Aseguradora"


class TitleType(str, enum.Enum):
    FACTURA_ORIGINAL = "Factura original"
    REFACTURADO = "Refacturado"
    ASEGURADORA = "Aseguradora"


# Column name -> (enum class, value used when the caller leaves it empty)
ENUM_FIELDS = {
    "city": (City, None),
    "repuve_status": (RepuveStatus, RepuveStatus.NO_VERIFICADO),
    "insurance_status": (InsuranceStatus, InsuranceStatus.NORMAL),
    "title_type": (TitleType, TitleType.FACTURA_ORIGINAL),
}


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


def _enum_column(enum_cls, name):
    # Stored as the human readable value with a CHECK constraint, like the legacy schema
    return Enum(
        enum_cls,
        name=name,
        values_callable=_enum_values,
        native_enum=False,
        create_constraint=True,
        length=32,
    )


class Car(Base):
    __tablename__ = "cars"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(Text, nullable=False)
    price = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    mileage = Column(Integer, nullable=False)
    city = Column(_enum_column(City, "ck_cars_city"), nullable=False)
    description = Column(Text, nullable=True)
    vin = Column(String(32), nullable=True)
    owners = Column(Integer, nullable=True)

    # Provenance
    repuve_status = Column(
        _enum_column(RepuveStatus, "ck_cars_repuve_status"),
        nullable=False,
        default=RepuveStatus.NO_VERIFICADO,
    )
    insurance_status = Column(
        _enum_column(InsuranceStatus, "ck_cars_insurance_status"),
        nullable=False,
        default=InsuranceStatus.NORMAL,
    )
    title_type = Column(
        _enum_column(TitleType, "ck_cars_title_type"),
        nullable=False,
        default=TitleType.FACTURA_ORIGINAL,
    )
    notes_history = Column(Text, nullable=True)

    # Identity & lifecycle
    slug = Column(String(255), unique=True, nullable=False, index=True)
    is_sold = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    images = relationship(
        "CarImage",
        back_populates="car",
        cascade="all, delete-orphan",
        order_by="[CarImage.sort_order, CarImage.id]",
    )

    @validates("city", "repuve_status", "insurance_status", "title_type")
    def validate_enum_field(self, key, value):
        enum_cls, default = ENUM_FIELDS[key]
        if value is None or value == "":
            if default is None:
                raise ValidationError(f"{key} is required", details={"field": key})
            return default
        try:
            return enum_cls(value)
        except ValueError:
            raise ValidationError(
                f"Invalid {key}: {value!r}",
                details={"field": key, "allowed": _enum_values(enum_cls)},
            )

    @property
    def cover(self):
        """Photo shown in list views: the flagged cover, else the first photo."""
        for image in self.images:
            if image.is_cover:
                return image
        return self.images[0] if self.images else None

    @property
    def cover_filename(self):
        cover = self.cover
        return cover.filename if cover else None
