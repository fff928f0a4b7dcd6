"""
Public-read / admin-write CRUD routers for catalog entities.

Each entity is described by a CatalogResource; build_catalog_router turns
it into list / get / create / update / delete endpoints. List endpoints
accept only the query filters declared on the resource.
"""
import logging
import math
from typing import List, Optional, Sequence, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth import require_admin
from database import get_db
import models_sqlalchemy as models
import models_pydantic as schemas

logger = logging.getLogger(__name__)

# (query parameter, column attribute, operator)
FilterSpec = Tuple[str, str, str]

OPERATORS = {
    "eq": lambda column, value: column == value,
    "gte": lambda column, value: column >= value,
    "lte": lambda column, value: column <= value,
}


class CatalogResource:
    def __init__(
        self,
        path: str,
        label: str,
        model,
        create_schema,
        response_schema,
        filters: Sequence[FilterSpec] = (),
        review_target: Optional[models.ReviewTarget] = None,
    ):
        self.path = path
        self.label = label
        self.model = model
        self.create_schema = create_schema
        self.response_schema = response_schema
        self.filters = list(filters)
        self.review_target = review_target


def apply_filters(query, resource: CatalogResource, params):
    """AND together every allow-listed filter present in params."""
    for param, attr, op in resource.filters:
        raw = params.get(param)
        if raw is None or raw.strip() == "":
            continue
        column = getattr(resource.model, attr)
        python_type = column.type.python_type
        try:
            value = python_type(raw.strip())
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid value for {param}: {raw}")
        if isinstance(value, float) and not math.isfinite(value):
            raise HTTPException(status_code=400, detail=f"Invalid value for {param}: {raw}")
        query = query.filter(OPERATORS[op](column, value))
    return query


def build_catalog_router(resource: CatalogResource) -> APIRouter:
    router = APIRouter(prefix=resource.path, tags=[resource.path.strip("/")])
    model = resource.model
    not_found = f"{resource.label} not found"

    def get_or_404(db: Session, item_id: int):
        item = db.query(model).filter(model.id == item_id).first()
        if not item:
            raise HTTPException(status_code=404, detail=not_found)
        return item

    def commit_or_409(db: Session):
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(status_code=409, detail=f"{resource.label} already exists")

    @router.get("", response_model=List[resource.response_schema])
    def list_items(request: Request, db: Session = Depends(get_db)):
        query = apply_filters(db.query(model), resource, request.query_params)
        return query.order_by(model.id).all()

    @router.get("/{item_id}", response_model=resource.response_schema)
    def get_item(item_id: int, db: Session = Depends(get_db)):
        return get_or_404(db, item_id)

    @router.post("", response_model=resource.response_schema, status_code=status.HTTP_201_CREATED)
    def create_item(
        payload: resource.create_schema,
        db: Session = Depends(get_db),
        admin: schemas.Principal = Depends(require_admin),
    ):
        item = model(**payload.model_dump())
        db.add(item)
        commit_or_409(db)
        db.refresh(item)
        logger.info(f"Admin {admin.id} created {resource.label} {item.id}")
        return item

    @router.put("/{item_id}", response_model=resource.response_schema)
    def update_item(
        item_id: int,
        payload: resource.create_schema,
        db: Session = Depends(get_db),
        admin: schemas.Principal = Depends(require_admin),
    ):
        item = get_or_404(db, item_id)
        for field, value in payload.model_dump().items():
            setattr(item, field, value)
        commit_or_409(db)
        db.refresh(item)
        logger.info(f"Admin {admin.id} updated {resource.label} {item.id}")
        return item

    @router.delete("/{item_id}", response_model=schemas.MessageResponse)
    def delete_item(
        item_id: int,
        db: Session = Depends(get_db),
        admin: schemas.Principal = Depends(require_admin),
    ):
        item = get_or_404(db, item_id)
        if resource.review_target is not None:
            db.query(models.Review).filter(
                models.Review.type == resource.review_target.value,
                models.Review.target_id == item_id,
            ).delete(synchronize_session=False)
        db.delete(item)
        db.commit()
        logger.info(f"Admin {admin.id} deleted {resource.label} {item_id}")
        return {"message": f"{resource.label} deleted successfully"}

    return router


CATALOG_RESOURCES = [
    CatalogResource(
        "/tours", "Tour", models.Tour, schemas.TourCreate, schemas.TourResponse,
        filters=[
            ("location", "location", "eq"),
            ("name", "name", "eq"),
            ("minPrice", "price", "gte"),
            ("maxPrice", "price", "lte"),
        ],
        review_target=models.ReviewTarget.TOUR,
    ),
    CatalogResource(
        "/hotels", "Hotel", models.Hotel, schemas.HotelCreate, schemas.HotelResponse,
        filters=[
            ("city", "city", "eq"),
            ("minRating", "rating", "gte"),
            ("maxPrice", "price_per_night", "lte"),
        ],
        review_target=models.ReviewTarget.HOTEL,
    ),
    CatalogResource(
        "/restaurants", "Restaurant", models.Restaurant,
        schemas.RestaurantCreate, schemas.RestaurantResponse,
        filters=[
            ("city", "city", "eq"),
            ("cuisine", "cuisine", "eq"),
            ("minRating", "rating", "gte"),
        ],
        review_target=models.ReviewTarget.RESTAURANT,
    ),
    CatalogResource(
        "/historical-places", "Historical place", models.HistoricalPlace,
        schemas.HistoricalPlaceCreate, schemas.HistoricalPlaceResponse,
        filters=[
            ("city", "city", "eq"),
            ("era", "era", "eq"),
            ("minRating", "rating", "gte"),
        ],
        review_target=models.ReviewTarget.HISTORICAL_PLACE,
    ),
    CatalogResource(
        "/recreations", "Recreational place", models.RecreationalPlace,
        schemas.RecreationalPlaceCreate, schemas.RecreationalPlaceResponse,
        filters=[
            ("city", "city", "eq"),
            ("category", "category", "eq"),
            ("minRating", "rating", "gte"),
        ],
        review_target=models.ReviewTarget.RECREATIONAL_PLACE,
    ),
    CatalogResource(
        "/transport", "Transport option", models.TransportOption,
        schemas.TransportOptionCreate, schemas.TransportOptionResponse,
        filters=[
            ("city", "city", "eq"),
            ("type", "type", "eq"),
            ("maxPrice", "price", "lte"),
        ],
    ),
    CatalogResource(
        "/cities", "City", models.City, schemas.CityCreate, schemas.CityResponse,
        filters=[("name", "name", "eq")],
    ),
]
