# storefront/api/deps.py
from functools import lru_cache

from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_gateway import PaymentGateway, build_payment_gateway


@lru_cache
def get_lock_service() -> LockService:
    return LockService()


@lru_cache
def get_payment_gateway() -> PaymentGateway | None:
    return build_payment_gateway()


def get_notification_service() -> NotificationService:
    return NotificationService()
