from enum import Enum


class PaymentStatus(str, Enum):
    """決済ステータス（外部の決済サブシステムからのイベントで更新）"""

    UNPAID = "unpaid"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentEventType(str, Enum):
    """決済サブシステムが発行するイベント"""

    PAYMENT_CONFIRMED = "payment_confirmed"
    PAYMENT_FAILED = "payment_failed"
    REFUND_SUCCEEDED = "refund_succeeded"
