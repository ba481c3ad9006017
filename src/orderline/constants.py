"""
Application constants and enums.
"""

from enum import Enum


class ItemStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"


class PaymentMethod(str, Enum):
    CASH = "cash"
    GCASH = "gcash"
    SPLIT = "split"


class OrderType(str, Enum):
    DINE_IN = "dine-in"
    TAKE_OUT = "take-out"


class OnlinePaymentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


class OrderSource(str, Enum):
    COUNTER = "counter"
    ONLINE = "online"


class OrderProgress(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class PaymentBadge(str, Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class KitchenSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Capability(str, Enum):
    CREW = "crew"
    ORDER_TAKER = "order_taker"


class Roles(str, Enum):
    CREW = "crew"
    ORDER_TAKER = "order_taker"
    CASHIER = "cashier"
    SUPER_ADMIN = "super_admin"

    @classmethod
    def all_values(cls) -> set:
        return {member.value for member in cls}


class EventType(str, Enum):
    ORDER_CREATED = "order.created"
    ORDER_UPDATED = "order.updated"
    ORDER_DELETED = "order.deleted"
    ONLINE_ORDER_CREATED = "onlineOrder.created"
    ONLINE_ORDER_CONFIRMED = "onlineOrder.confirmed"


ROLE_CAPABILITIES = {
    Roles.CREW: frozenset({Capability.CREW}),
    Roles.ORDER_TAKER: frozenset({Capability.ORDER_TAKER}),
    Roles.CASHIER: frozenset({Capability.ORDER_TAKER}),
    Roles.SUPER_ADMIN: frozenset({Capability.CREW, Capability.ORDER_TAKER}),
}

# Forward order used for single-click advancement; served is terminal.
ITEM_STATUS_SEQUENCE = (
    ItemStatus.PENDING,
    ItemStatus.PREPARING,
    ItemStatus.READY,
    ItemStatus.SERVED,
)

ITEM_TRANSITIONS = {
    (ItemStatus.PENDING, ItemStatus.PREPARING): {
        "action": "start_preparing",
        "allowed_capabilities": {Capability.CREW},
        "label": "Start Preparing",
    },
    (ItemStatus.PREPARING, ItemStatus.READY): {
        "action": "mark_ready",
        "allowed_capabilities": {Capability.CREW},
        "label": "Ready to Serve",
    },
    (ItemStatus.READY, ItemStatus.SERVED): {
        "action": "serve",
        "allowed_capabilities": {Capability.ORDER_TAKER},
        "label": "Mark Served",
    },
}

SNAPSHOT_EVENTS = {
    EventType.ORDER_CREATED,
    EventType.ORDER_UPDATED,
    EventType.ONLINE_ORDER_CREATED,
    EventType.ONLINE_ORDER_CONFIRMED,
}

# Online order code alphabet (no I, O, 0 or 1).
ORDER_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ORDER_CODE_LENGTH = 6

CUSTOMER_NAME_MAX_LENGTH = 100
NOTE_MAX_LENGTH = 500

DEFAULT_PER_ORDER_MINUTES = 5
DEFAULT_KITCHEN_CAPACITY = 10
KITCHEN_MEDIUM_LOAD_PERCENT = 50
KITCHEN_HIGH_LOAD_PERCENT = 80

DEFAULT_BUSINESS_DAY_START = "08:00"
DEFAULT_BUSINESS_DAY_END = "01:00"
DEFAULT_TIMEZONE = "Asia/Manila"
DEFAULT_REFETCH_SECONDS = 30
