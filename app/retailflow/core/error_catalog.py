from dataclasses import dataclass
from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    INVALID_TOKEN = ErrorDefinition("INVALID_TOKEN", "Invalid token", status.HTTP_401_UNAUTHORIZED)
    INVALID_CREDENTIALS = ErrorDefinition(
        "INVALID_CREDENTIALS",
        "Invalid credentials",
        status.HTTP_401_UNAUTHORIZED,
    )
    USER_INACTIVE = ErrorDefinition(
        "USER_INACTIVE",
        "User is inactive",
        status.HTTP_403_FORBIDDEN,
    )
    PERMISSION_DENIED = ErrorDefinition(
        "PERMISSION_DENIED",
        "Permission denied",
        status.HTTP_403_FORBIDDEN,
    )
    USERNAME_TAKEN = ErrorDefinition(
        "USERNAME_TAKEN",
        "Username or email already registered",
        status.HTTP_409_CONFLICT,
    )
    USER_NOT_FOUND = ErrorDefinition("USER_NOT_FOUND", "User not found", status.HTTP_404_NOT_FOUND)
    CURRENT_PASSWORD_INVALID = ErrorDefinition(
        "CURRENT_PASSWORD_INVALID",
        "Current password invalid",
        status.HTTP_400_BAD_REQUEST,
    )
    PASSWORD_TOO_SHORT = ErrorDefinition(
        "PASSWORD_TOO_SHORT",
        "Password too short",
        status.HTTP_400_BAD_REQUEST,
    )
    PASSWORD_MUST_DIFFER = ErrorDefinition(
        "PASSWORD_MUST_DIFFER",
        "New password must differ from current password",
        status.HTTP_400_BAD_REQUEST,
    )
    PASSWORD_COMPLEXITY = ErrorDefinition(
        "PASSWORD_COMPLEXITY",
        "Password must include letters and numbers",
        status.HTTP_400_BAD_REQUEST,
    )
    PRODUCT_NOT_FOUND = ErrorDefinition(
        "PRODUCT_NOT_FOUND",
        "Product not found",
        status.HTTP_404_NOT_FOUND,
    )
    BARCODE_ALREADY_EXISTS = ErrorDefinition(
        "BARCODE_ALREADY_EXISTS",
        "A product with this barcode already exists",
        status.HTTP_409_CONFLICT,
    )
    CATEGORY_NOT_FOUND = ErrorDefinition(
        "CATEGORY_NOT_FOUND",
        "Category not found",
        status.HTTP_404_NOT_FOUND,
    )
    CATEGORY_ALREADY_EXISTS = ErrorDefinition(
        "CATEGORY_ALREADY_EXISTS",
        "Category already exists",
        status.HTTP_409_CONFLICT,
    )
    SUPPLIER_NOT_FOUND = ErrorDefinition(
        "SUPPLIER_NOT_FOUND",
        "Supplier not found",
        status.HTTP_404_NOT_FOUND,
    )
    SALE_NOT_FOUND = ErrorDefinition("SALE_NOT_FOUND", "Sale not found", status.HTTP_404_NOT_FOUND)
    OUT_OF_STOCK = ErrorDefinition(
        "OUT_OF_STOCK",
        "Product is out of stock",
        status.HTTP_409_CONFLICT,
    )
    INSUFFICIENT_STOCK = ErrorDefinition(
        "INSUFFICIENT_STOCK",
        "Not enough stock on hand to complete the sale",
        status.HTTP_409_CONFLICT,
    )
    CART_NOT_FOUND = ErrorDefinition("CART_NOT_FOUND", "Cart not found", status.HTTP_404_NOT_FOUND)
    CART_LINE_NOT_FOUND = ErrorDefinition(
        "CART_LINE_NOT_FOUND",
        "Cart line not found",
        status.HTTP_404_NOT_FOUND,
    )
    CART_CLOSED = ErrorDefinition(
        "CART_CLOSED",
        "Cart transaction is closed; clear the cart to start a new one",
        status.HTTP_409_CONFLICT,
    )
    EMPTY_CART = ErrorDefinition(
        "EMPTY_CART",
        "Cart is empty",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    INSUFFICIENT_PAYMENT = ErrorDefinition(
        "INSUFFICIENT_PAYMENT",
        "Insufficient payment",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    PERSISTENCE_ERROR = ErrorDefinition(
        "PERSISTENCE_ERROR",
        "Failed to persist changes",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    DB_UNAVAILABLE = ErrorDefinition(
        "DB_UNAVAILABLE",
        "Database unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    LOCK_TIMEOUT = ErrorDefinition(
        "LOCK_TIMEOUT",
        "Lock wait timeout",
        status.HTTP_409_CONFLICT,
    )
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    IDEMPOTENCY_KEY_REQUIRED = ErrorDefinition(
        "IDEMPOTENCY_KEY_REQUIRED",
        "Idempotency key required",
        status.HTTP_400_BAD_REQUEST,
    )
    IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD = ErrorDefinition(
        "IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD",
        "Idempotency key reused with different payload",
        status.HTTP_409_CONFLICT,
    )
    IDEMPOTENCY_REQUEST_IN_PROGRESS = ErrorDefinition(
        "IDEMPOTENCY_REQUEST_IN_PROGRESS",
        "Idempotency request already in progress",
        status.HTTP_409_CONFLICT,
    )
    IDEMPOTENCY_REPLAY = ErrorDefinition(
        "IDEMPOTENCY_REPLAY",
        "Idempotent replay",
        status.HTTP_200_OK,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None):
        self.error = error
        self.details = details
        super().__init__(error.message)
