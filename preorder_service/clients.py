"""
This module provides the communication client for the store notification channel:
- Store Notification Queue (RabbitMQ)
New orders are announced to every store that has items in them. The consumer on
the other side of the queue forwards the notice to the store's WhatsApp number.
"""

import json
import logging
import time
import uuid

import pika

from .config import RABBITMQ_HOST, RABBITMQ_PASSWORD, RABBITMQ_USER, STORE_NOTIFICATION_QUEUE

log = logging.getLogger(__name__)


# --- Store Notification Client (MQ) ---
class StoreNotificationClient:
    """
    Client for the store notification queue (RabbitMQ).
    Publishes per-store order notices and manages the MQ connection.
    """
    def __init__(self, host: str = RABBITMQ_HOST, queue: str = STORE_NOTIFICATION_QUEUE):
        """Initializes the RabbitMQ connection and declares the notification queue."""
        self.host = host
        self.queue = queue
        self.connection = None
        self.channel = None
        self._connect()

    def _connect(self):
        """
        Establishes a RabbitMQ connection using the configured credentials.
        Raises:
            pika.exceptions.AMQPConnectionError: If the connection fails.
        """
        try:
            credentials = pika.PlainCredentials(RABBITMQ_USER, RABBITMQ_PASSWORD)
            self.connection = pika.BlockingConnection(
                pika.ConnectionParameters(host=self.host, credentials=credentials, heartbeat=60)
            )
            self.channel = self.connection.channel()
            self.channel.queue_declare(queue=self.queue, durable=True)
            log.info("Store notification client connected to RabbitMQ.")
        except pika.exceptions.AMQPConnectionError as e:
            log.critical(f"Cannot connect to RabbitMQ (store notifications): {e}")
            raise

    def publish_store_order(self, order_number: str, store: dict, items: list, message: str, whatsapp_url=None):
        """
        Publishes a new-order notice for one store.
        Args:
            order_number (str): Human-readable order number.
            store (dict): Store data with 'id', 'name' and 'whatsappNumber'.
            items (list): The store's items as dicts with 'bundleId', 'name' and 'quantity'.
            message (str): Pre-rendered WhatsApp message text.
            whatsapp_url (str, optional): wa.me link, when the store has a WhatsApp number.
        Raises:
            Exception: If message publishing fails.
        """
        notice = {
            "noticeId": str(uuid.uuid4()),
            "orderNumber": order_number,
            "noticeTimestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "store": store,
            "items": items,
            "message": message,
            "whatsappUrl": whatsapp_url,
        }
        try:
            if not self.connection or self.connection.is_closed:
                self._connect()

            self.channel.basic_publish(
                exchange='',
                routing_key=self.queue,
                body=json.dumps(notice),
                properties=pika.BasicProperties(delivery_mode=2)  # persistent
            )
            log.info(f"[Order: {order_number}] Notice for store '{store['name']}' published.")
        except Exception as e:
            log.error(f"[Order: {order_number}] Failed to publish notice for store '{store['name']}': {e}")
            raise

    def close(self):
        if self.connection and self.connection.is_open:
            self.connection.close()
