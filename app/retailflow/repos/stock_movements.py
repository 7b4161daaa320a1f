from sqlalchemy import select

from app.retailflow.db.models import StockMovement


class StockMovementRepository:
    def __init__(self, db):
        self.db = db

    def add(self, movement: StockMovement) -> StockMovement:
        self.db.add(movement)
        return movement

    def list_movements(
        self,
        *,
        product_id: str | None = None,
        movement_type: str | None = None,
        limit: int = 50,
    ) -> list[StockMovement]:
        query = select(StockMovement)
        if product_id:
            query = query.where(StockMovement.product_id == product_id)
        if movement_type:
            query = query.where(StockMovement.movement_type == movement_type)
        query = query.order_by(StockMovement.created_at.desc()).limit(limit)
        return self.db.execute(query).scalars().all()

    def list_for_sale(self, sale_id) -> list[StockMovement]:
        stmt = select(StockMovement).where(StockMovement.sale_id == sale_id).order_by(StockMovement.created_at)
        return self.db.execute(stmt).scalars().all()
