"""Car repository for database operations."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import func, select

from bookstore.api.dependencies import DBSession
from bookstore.modules.cars.models import Car


class CarRepository:
    """Repository for Car database operations."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def create(self, car: Car) -> Car:
        self.session.add(car)
        await self.session.flush()
        await self.session.refresh(car)
        return car

    async def get_by_id(self, car_id: UUID) -> Car | None:
        return await self.session.get(Car, car_id)

    async def list_page(self, page: int = 1, page_size: int = 20) -> tuple[list[Car], int]:
        total = (await self.session.execute(select(func.count()).select_from(Car))).scalar_one()

        stmt = (
            select(Car)
            .order_by(Car.make, Car.model, Car.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def update(self, car: Car) -> Car:
        await self.session.flush()
        await self.session.refresh(car)
        return car

    async def delete(self, car: Car) -> None:
        await self.session.delete(car)
        await self.session.flush()


CarRepo = Annotated[CarRepository, Depends(CarRepository)]
