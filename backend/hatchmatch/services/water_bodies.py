"""Water-body reference data lookups."""

import json
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from ..exceptions import WaterBodyNotFoundError
from ..models.water_body import WATER_BODY_TYPES, WaterBodyModel

SEARCH_LIMIT = 50


@dataclass
class WaterBody:
    id: str
    name: str
    type: str
    state: str
    latitude: float
    longitude: float
    city: Optional[str] = None
    species: list[str] = field(default_factory=list)
    description: Optional[str] = None


def _to_water(row: WaterBodyModel) -> WaterBody:
    return WaterBody(
        id=row.id,
        name=row.name,
        type=row.type,
        state=row.state,
        latitude=row.latitude,
        longitude=row.longitude,
        city=row.city,
        species=json.loads(row.species or "[]"),
        description=row.description,
    )


class WaterBodyRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def find(self, water_body_id: str) -> Optional[WaterBody]:
        row = self._db.query(WaterBodyModel).filter_by(id=water_body_id).first()
        return _to_water(row) if row is not None else None

    def get(self, water_body_id: str) -> WaterBody:
        """Like ``find`` but raises WaterBodyNotFoundError."""
        water = self.find(water_body_id)
        if water is None:
            raise WaterBodyNotFoundError(f"Water body not found: {water_body_id}")
        return water

    def search(self, query: str = "", state: Optional[str] = None) -> list[WaterBody]:
        """Case-insensitive name substring search, optionally within one state."""
        q = self._db.query(WaterBodyModel)
        if query:
            q = q.filter(WaterBodyModel.name.ilike(f"%{query}%"))
        if state:
            q = q.filter(WaterBodyModel.state == state)
        rows = q.order_by(WaterBodyModel.name).limit(SEARCH_LIMIT).all()
        return [_to_water(r) for r in rows]

    def create(
        self,
        name: str,
        type: str,
        state: str,
        latitude: float,
        longitude: float,
        city: Optional[str] = None,
        species: Optional[list[str]] = None,
        description: Optional[str] = None,
    ) -> WaterBody:
        if type not in WATER_BODY_TYPES:
            raise ValueError(f"Unknown water body type: {type}")
        row = WaterBodyModel(
            name=name,
            type=type,
            state=state,
            city=city,
            latitude=latitude,
            longitude=longitude,
            species=json.dumps(species or []),
            description=description,
        )
        self._db.add(row)
        self._db.commit()
        self._db.refresh(row)
        return _to_water(row)
