# Import all models so they're registered with Base.metadata
from app.models.car import Car
from app.models.car_image import CarImage

__all__ = [
    "Car",
    "CarImage",
]
