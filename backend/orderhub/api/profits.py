from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from orderhub.allocation.payouts import OrderNotFoundError, calculate_order_profit, update_payout_status
from orderhub.api.deps import require_admin
from orderhub.core.db import get_db
from orderhub.crud.allocations import get_order_profit
from orderhub.reports.dashboard import profit_statistics
from orderhub.schemas.profits import (
    OrderProfitRead,
    PayoutStatusUpdate,
    ProfitCalculateRequest,
    ProfitStatsRead,
)


router = APIRouter(prefix="/api/v1/profit", tags=["profit"], dependencies=[Depends(require_admin)])


@router.post("/calculate", response_model=OrderProfitRead)
def calculate_profit_endpoint(payload: ProfitCalculateRequest, db: Session = Depends(get_db)):
    try:
        return calculate_order_profit(
            db,
            order_id=payload.order_id,
            product_cost=payload.product_cost,
            gateway_cost_percentage=payload.gateway_cost_percentage,
            payout_status=payload.payout_status,
            notes=payload.notes,
        )
    except OrderNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found") from None


@router.get("/stats", response_model=ProfitStatsRead)
def profit_stats_endpoint(db: Session = Depends(get_db)):
    return profit_statistics(db)


@router.put("/{order_id}/status", response_model=OrderProfitRead)
def update_payout_status_endpoint(order_id: int, payload: PayoutStatusUpdate, db: Session = Depends(get_db)):
    try:
        return update_payout_status(db, order_id=order_id, payout_status=payload.payout_status)
    except OrderNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found") from None


@router.get("/{order_id}", response_model=OrderProfitRead)
def get_profit_endpoint(order_id: int, db: Session = Depends(get_db)):
    profit = get_order_profit(db, order_id)
    if profit is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profit not calculated")
    return profit
