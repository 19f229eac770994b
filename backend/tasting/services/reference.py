"""Region and distillery reference data for the cascading region -> distillery pick."""
from typing import List

from tasting import db
from tasting.errors import NotFoundError
from tasting.models import Region, Distillery
from tasting.schemas import RegionEntity, DistilleryEntity


def list_regions() -> List[RegionEntity]:
    return [RegionEntity.model_validate(r) for r in Region.query.order_by(Region.name).all()]


def distilleries_for_region(region_id: str) -> List[DistilleryEntity]:
    if not db.session.get(Region, region_id):
        raise NotFoundError('Region not found')
    rows = Distillery.query.filter_by(region_id=region_id).order_by(Distillery.name).all()
    return [DistilleryEntity.model_validate(d) for d in rows]
