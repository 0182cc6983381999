# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.auth import get_current_user
from storefront.api.deps import get_lock_service, get_notification_service, get_payment_gateway
from storefront.data.database import get_db
from storefront.domain.errors import OrderError
from storefront.domain.identity import CurrentUser
from storefront.domain.schemas import OrderCreate, OrderOut, OrderStatusIn
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService
from storefront.services.payment_gateway import PaymentGateway
from storefront.services.stock_ledger import StockLedger

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(
    db: Session = Depends(get_db),
    payment_gateway: PaymentGateway | None = Depends(get_payment_gateway),
    notification_service: NotificationService = Depends(get_notification_service),
) -> OrderService:
    return OrderService(db, payment_gateway, notification_service)


def get_ledger(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> StockLedger:
    return StockLedger(db, lock_service, notification_service)


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    user: CurrentUser = Depends(get_current_user),
    svc: OrderService = Depends(get_service),
):
    """
    Tworzy zamowienie z koszyka zalogowanego uzytkownika.
    """
    try:
        return svc.place_order(user.id, payload.shipping_info, payload.payment_method)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/", response_model=List[OrderOut])
def list_orders(
    user: CurrentUser = Depends(get_current_user),
    svc: OrderService = Depends(get_service),
):
    return svc.list_orders(user.id)


@router.get("/admin", response_model=List[OrderOut])
def list_all_orders(
    user: CurrentUser = Depends(get_current_user),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.list_all_orders(user)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user: CurrentUser = Depends(get_current_user),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.get_order(order_id, user)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.put("/{order_id}", response_model=OrderOut)
def update_order_status(
    order_id: int,
    payload: OrderStatusIn,
    user: CurrentUser = Depends(get_current_user),
    ledger: StockLedger = Depends(get_ledger),
):
    """
    Zmiana statusu przez admina, razem ze zdjeciem / zwrotem towaru.
    """
    try:
        return ledger.transition_order_status(order_id, payload.status, user)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
