from datetime import datetime
from typing import Tuple

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from archsearch.schemas.search_response import EMPTY_YEAR_MIN

def year_range_facet(db: Session, buildings) -> Tuple[int, int]:
    low, high = db.execute(
        select(func.min(buildings.c.year_built), func.max(buildings.c.year_built))
        .where(buildings.c.year_built.isnot(None))
    ).one()
    if low is None or high is None:
        return (EMPTY_YEAR_MIN, datetime.now().year)
    return (int(low), int(high))

def audio_guides_count(db: Session, reviews) -> int:
    n = db.execute(
        select(func.count(func.distinct(reviews.c.building_id)))
        .where(and_(reviews.c.audio_url.isnot(None), reviews.c.audio_url != ""))
    ).scalar_one()
    return int(n or 0)

def reviews_count(db: Session, reviews) -> int:
    return int(db.execute(select(func.count()).select_from(reviews)).scalar_one() or 0)
