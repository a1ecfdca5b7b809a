ORDER_STATUSES = ["pending", "processing", "shipped", "delivered", "cancelled"]

PAYMENT_STATUSES = ["pending", "paid", "failed", "refunded"]

ORDER_PAYMENT_METHODS = [
    "cash_on_delivery",
    "credit_card",
    "debit_card",
    "bkash",
    "nagad",
    "card",
    "mobile_banking",
]

PROOF_PAYMENT_METHODS = ["bkash", "nagad", "rocket", "bank"]

CART_SIZES = ["S", "M", "L", "XL", "XXL"]

TERMINAL_STATUSES = ["delivered", "cancelled"]

# Staff may skip forward or step back; nothing leaves delivered or cancelled.
ALLOWED_TRANSITIONS = {
    status: [] if status in TERMINAL_STATUSES else list(ORDER_STATUSES)
    for status in ORDER_STATUSES
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, [])
