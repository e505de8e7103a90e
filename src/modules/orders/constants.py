"""Order domain constants.

Status, payment and history choices plus the order state machine's edge
set.  The edge set is the single source of truth for which status moves
are legal; the state machine, the ``pre_save`` guard and the admin API all
read it from here.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    CONFIRMED = "CONFIRMED", "Confirmed"
    PREPARING = "PREPARING", "Preparing"
    READY_FOR_DELIVERY = "READY_FOR_DELIVERY", "Ready for Delivery"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY", "Out for Delivery"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"
    REFUNDED = "REFUNDED", "Refunded"


class PaymentStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PAID = "PAID", "Paid"
    FAILED = "FAILED", "Failed"
    REFUNDED = "REFUNDED", "Refunded"


class PaymentMethod(models.TextChoices):
    CREDIT_CARD = "credit_card", "Credit Card"
    PAYPAL = "paypal", "PayPal"
    BANK_TRANSFER = "bank_transfer", "Bank Transfer"
    CASH_ON_DELIVERY = "cash_on_delivery", "Cash on Delivery"


class HistoryEventType(models.TextChoices):
    STATUS = "STATUS", "Status change"
    PAYMENT = "PAYMENT", "Payment update"


ORDER_TRANSITIONS: frozenset[tuple[str, str]] = frozenset(
    {
        (OrderStatus.PENDING, OrderStatus.CONFIRMED),
        (OrderStatus.PENDING, OrderStatus.CANCELLED),
        (OrderStatus.CONFIRMED, OrderStatus.PREPARING),
        (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
        (OrderStatus.PREPARING, OrderStatus.READY_FOR_DELIVERY),
        (OrderStatus.PREPARING, OrderStatus.CANCELLED),
        (OrderStatus.READY_FOR_DELIVERY, OrderStatus.OUT_FOR_DELIVERY),
        (OrderStatus.READY_FOR_DELIVERY, OrderStatus.CANCELLED),
        (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED),
        (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED),
        (OrderStatus.DELIVERED, OrderStatus.REFUNDED),
    }
)

TERMINAL_STATES: frozenset[str] = frozenset(
    {OrderStatus.CANCELLED, OrderStatus.REFUNDED}
)

# Customer-facing wording for each status, rendered by the tracking view.
STATUS_DESCRIPTIONS: dict[str, str] = {
    OrderStatus.PENDING: "Order received, awaiting confirmation",
    OrderStatus.CONFIRMED: "Order confirmed, preparing for processing",
    OrderStatus.PREPARING: "Order is being prepared",
    OrderStatus.READY_FOR_DELIVERY: "Order ready for delivery",
    OrderStatus.OUT_FOR_DELIVERY: "Order out for delivery",
    OrderStatus.DELIVERED: "Order delivered",
    OrderStatus.CANCELLED: "Order has been cancelled",
    OrderStatus.REFUNDED: "Order has been refunded",
}

# Payment rows report collection separately from fulfilment.
PAYMENT_DESCRIPTIONS: dict[str, str] = {
    PaymentStatus.PENDING: "Payment pending",
    PaymentStatus.PAID: "Payment collected",
    PaymentStatus.FAILED: "Payment failed",
    PaymentStatus.REFUNDED: "Payment refunded",
}

ORDER_NUMBER_MAX_RETRIES = 5
ORDER_NUMBER_SUFFIX_LENGTH = 4
