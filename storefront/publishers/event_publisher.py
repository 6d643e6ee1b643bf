"""
RabbitMQ Event Publisher
"""
import logging
import pika
from typing import Dict, Iterable

from storefront.config import settings
from storefront.schemas.events import EventEnvelope

logger = logging.getLogger(__name__)

ORDER_VIEW_PATHS = ("/admin", "/orders")


class EventPublisher:
    """Publisher for sending storefront events to RabbitMQ"""

    def __init__(self):
        self.rabbitmq_url = settings.RABBITMQ_URL
        self.exchange = settings.RABBITMQ_EXCHANGE

    def publish(self, event_type: str, routing_key: str, data: Dict) -> bool:
        """
        Publish an event to the topic exchange

        Args:
            event_type: Event name, e.g. "OrderCreated"
            routing_key: Topic routing key, e.g. "order.created"
            data: Event data

        Returns:
            True if published successfully, False otherwise
        """
        event = EventEnvelope(event_type=event_type, source=settings.SERVICE_NAME, data=data)

        try:
            connection = pika.BlockingConnection(
                pika.URLParameters(self.rabbitmq_url)
            )
            try:
                channel = connection.channel()

                channel.exchange_declare(
                    exchange=self.exchange,
                    exchange_type='topic',
                    durable=True
                )

                # Enable publisher confirms
                channel.confirm_delivery()

                channel.basic_publish(
                    exchange=self.exchange,
                    routing_key=routing_key,
                    body=event.model_dump_json(),
                    properties=pika.BasicProperties(
                        delivery_mode=2,  # Persistent message
                        content_type='application/json',
                        correlation_id=event.event_id
                    )
                )
            finally:
                connection.close()

            logger.debug("Event published: %s (ID: %s)", event_type, event.event_id)
            return True

        except Exception as e:
            logger.warning("Failed to publish %s event: %s", event_type, e)
            return False

    def publish_order_created(self, order_data: Dict) -> bool:
        return self.publish("OrderCreated", "order.created", order_data)

    def publish_order_status_changed(self, order_data: Dict) -> bool:
        return self.publish("OrderStatusChanged", "order.status.changed", order_data)

    def publish_payment_completed(self, payment_data: Dict) -> bool:
        return self.publish("PaymentCompleted", "payment.completed", payment_data)

    def publish_review_submitted(self, review_data: Dict) -> bool:
        return self.publish("ReviewSubmitted", "review.submitted", review_data)

    def publish_views_invalidated(self, paths: Iterable[str] = ORDER_VIEW_PATHS) -> bool:
        """Tell page caches that the given views are stale"""
        return self.publish("ViewsInvalidated", "views.invalidated", {"paths": list(paths)})
