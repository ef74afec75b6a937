class PaymentError(Exception):
    """Base for errors the payment endpoints translate into JSON responses."""

    status_code = 400
    public_message = "Payment request failed"

    def __init__(self, message=None):
        super().__init__(message or self.public_message)

    @property
    def client_message(self) -> str:
        return str(self)


class Unauthorized(PaymentError):
    status_code = 401
    public_message = "Unauthorized"


class InvalidRequest(PaymentError):
    public_message = "Missing required fields"


class NotFound(PaymentError):
    status_code = 404
    public_message = "Order not found"


class GatewayError(PaymentError):
    """The payment gateway rejected the call, failed, timed out, or is not configured."""

    status_code = 502
    public_message = "Payment gateway error"

    def __init__(self, message=None, *, status_code=None, payload=None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload


class SignatureMismatch(PaymentError):
    public_message = "Payment verification failed"

    def __init__(self, order_id):
        super().__init__(f"Signature mismatch for order {order_id}")
        self.order_id = order_id

    @property
    def client_message(self) -> str:
        # Never tell the caller which part of the signature was wrong
        return self.public_message


class AlreadyProcessed(PaymentError):
    """The order is already terminal; callers answer 200 and change nothing."""

    status_code = 200
    public_message = "Payment already processed"

    def __init__(self, order):
        super().__init__(f"Order {order.order_id} already {order.status}")
        self.order = order


class EntitlementPending(Exception):
    """Coin credit failed after the order became paid; the sweep will retry."""

    def __init__(self, order_id):
        super().__init__(f"Entitlement pending for order {order_id}")
        self.order_id = order_id
