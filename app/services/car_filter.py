from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import List, Optional, Union

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import selectinload

from app.models.car import Car
from app.schemas.car import CarFilter


@dataclass
class CarPredicate:
    """AND-ed list of bound-parameter clauses plus an optional row cap."""

    clauses: List = field(default_factory=list)
    limit: Optional[int] = None

    def statement(self):
        query = select(Car).options(selectinload(Car.images))
        if self.clauses:
            query = query.where(and_(*self.clauses))
        # Newest first; id breaks ties within the timestamp resolution
        query = query.order_by(Car.created_at.desc(), Car.id.desc())
        if self.limit is not None:
            query = query.limit(self.limit)
        return query


def compose_filter(criteria: Union[CarFilter, Mapping, None] = None) -> CarPredicate:
    """Turn inventory criteria into a predicate. Absent criteria add nothing."""
    if criteria is None:
        criteria = CarFilter()
    elif not isinstance(criteria, CarFilter):
        criteria = CarFilter.model_validate(dict(criteria))

    conditions = []

    # Text search in title and description
    if criteria.q:
        term = criteria.q.lower()
        conditions.append(
            or_(
                func.lower(Car.title).contains(term, autoescape=True),
                func.lower(Car.description).contains(term, autoescape=True),
            )
        )

    if criteria.city is not None:
        conditions.append(Car.city == criteria.city)

    # Price range
    if criteria.min_price is not None:
        conditions.append(Car.price >= criteria.min_price)
    if criteria.max_price is not None:
        conditions.append(Car.price <= criteria.max_price)

    # Year: exact match, with an optional lower bound
    if criteria.year is not None:
        conditions.append(Car.year == criteria.year)
    if criteria.min_year is not None:
        conditions.append(Car.year >= criteria.min_year)

    # Provenance
    if criteria.repuve is not None:
        conditions.append(Car.repuve_status == criteria.repuve)
    if criteria.insurance is not None:
        conditions.append(Car.insurance_status == criteria.insurance)

    return CarPredicate(clauses=conditions, limit=criteria.limit)
