"""Car API routes."""

from uuid import UUID

from fastapi import Query, Request, Response, status

from bookstore.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from bookstore.core.errors import NotFoundError
from bookstore.modules.cars import router
from bookstore.modules.cars.models import Car
from bookstore.modules.cars.repos import CarRepo
from bookstore.modules.cars.schemas import (
    CarCreate,
    CarListResponse,
    CarResponse,
    CarUpdate,
)


async def _get_or_404(repo: CarRepo, car_id: UUID) -> Car:
    car = await repo.get_by_id(car_id)
    if car is None:
        raise NotFoundError("Car not found", resource="car", resource_id=str(car_id))
    return car


@router.get("", response_model=CarListResponse, summary="List cars")
async def list_cars(
    repo: CarRepo,
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> CarListResponse:
    cars, total = await repo.list_page(page, page_size)
    return CarListResponse(
        items=[CarResponse.model_validate(c) for c in cars],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{car_id}", response_model=CarResponse, summary="Get car")
async def get_car(car_id: UUID, repo: CarRepo) -> CarResponse:
    return CarResponse.model_validate(await _get_or_404(repo, car_id))


@router.post(
    "",
    response_model=CarResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create car",
)
async def create_car(
    data: CarCreate, repo: CarRepo, request: Request, response: Response
) -> CarResponse:
    car = await repo.create(Car(**data.model_dump()))
    response.headers["Location"] = str(request.url_for("get_car", car_id=car.id))
    return CarResponse.model_validate(car)


@router.put("/{car_id}", response_model=CarResponse, summary="Replace car")
async def update_car(car_id: UUID, data: CarUpdate, repo: CarRepo) -> CarResponse:
    car = await _get_or_404(repo, car_id)
    for field, value in data.model_dump().items():
        setattr(car, field, value)
    return CarResponse.model_validate(await repo.update(car))


@router.delete("/{car_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete car")
async def delete_car(car_id: UUID, repo: CarRepo) -> None:
    await repo.delete(await _get_or_404(repo, car_id))
