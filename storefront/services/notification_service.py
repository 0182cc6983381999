# storefront/services/notification_service.py
from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Serwis do wysylania powiadomien o zamowieniach.
    Uzywa Celery do asynchronicznego przetwarzania.
    """

    def send_order_notification(self, user_id: int, order_id: int, status: str) -> None:
        # powiadomienie idzie po commicie, brak brokera nie cofa zamowienia
        try:
            send_order_notification_task.delay(user_id, order_id, status)
        except Exception as e:
            logger.warning(f"Failed to enqueue notification for order {order_id}: {e}")


@celery_app.task(name="storefront.services.notification_service.send_order_notification_task")
def send_order_notification_task(user_id: int, order_id: int, status: str):
    """
    Celery task - w prawdziwym systemie wyslalby email/SMS/push.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: Order {order_id} is now {status}")
    return {"user_id": user_id, "order_id": order_id, "status": status}
