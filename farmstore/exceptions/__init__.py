"""Custom exceptions for the Farmstore application."""


class StoreError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class ValidationError(StoreError):
    """Raised for malformed or missing input."""
    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class BusinessLogicError(StoreError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class NotFoundError(StoreError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class EmptyCartError(BusinessLogicError):
    """Raised when checkout is attempted with no cart lines."""
    def __init__(self, message="No items in cart to create order"):
        super().__init__(message)


class InsufficientStockError(BusinessLogicError):
    """Raised when a variant cannot cover the requested quantity."""
    def __init__(self, product_name, required, available, variant_id=None):
        self.product_name = product_name
        self.required = int(required)
        self.available = int(available)
        self.shortfall = max(self.required - self.available, 0)
        self.variant_id = variant_id
        message = (
            f"Insufficient stock for {product_name}: "
            f"requested {self.required}, available {self.available}"
        )
        super().__init__(message, payload={
            'reason': 'insufficient_stock',
            'productName': product_name,
            'variantId': variant_id,
            'requested': self.required,
            'available': self.available,
            'shortfall': self.shortfall,
        })


class DiscountRejectedError(BusinessLogicError):
    """Raised when a discount cannot be used for this cart or user."""
    def __init__(self, reason, message):
        self.reason = reason
        super().__init__(message, payload={'reason': reason})


class InvalidStatusTransitionError(BusinessLogicError):
    """Raised when an order cannot move to the requested status."""
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot change order status from '{current}' to '{target}'",
            status_code=409,
            payload={'currentStatus': current, 'requestedStatus': target},
        )


class PaymentVerificationError(StoreError):
    """Raised when a gateway payment signature does not match."""
    def __init__(self, message="Invalid payment signature"):
        super().__init__(message, 400)


class PaymentGatewayError(StoreError):
    """Raised when the payment gateway is unavailable or misconfigured."""
    def __init__(self, message="Payment gateway unavailable", status_code=502):
        super().__init__(message, status_code)


class UnauthorizedError(StoreError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Authentication required", status_code=401):
        super().__init__(message, status_code)
