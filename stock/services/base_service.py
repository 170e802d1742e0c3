from typing import Dict, Any
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


class ServiceError(Exception):
    def __init__(self, message: str, code: str = "ERROR", details: Dict = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class InvalidArgumentError(ServiceError):
    def __init__(self, message: str, field: str = None, details: Dict = None):
        super().__init__(message, "INVALID_ARGUMENT", details)
        self.field = field


class NotFoundError(ServiceError):
    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found: {identifier}",
            "NOT_FOUND",
            {"resource": resource, "identifier": str(identifier)}
        )


class BusinessRuleError(ServiceError):
    def __init__(self, message: str, rule: str = None):
        super().__init__(message, "BUSINESS_RULE_VIOLATION", {"rule": rule})


class InsufficientStockError(ServiceError):
    def __init__(self, item_name: str, required: Decimal, available: Decimal):
        super().__init__(
            insufficient_stock_message(item_name, required, available),
            "INSUFFICIENT_STOCK",
            {"item": item_name, "required": str(required), "available": str(available)}
        )


class AlreadyProcessedError(ServiceError):
    def __init__(self, message: str, reference: str = None):
        super().__init__(message, "ALREADY_PROCESSED", {"reference": reference})


class TransactionFailureError(ServiceError):
    def __init__(self, message: str = "Stock transaction failed and was rolled back"):
        super().__init__(message, "TRANSACTION_FAILURE")


def insufficient_stock_message(item_name: str, required: Decimal, available: Decimal) -> str:
    return (
        f"Insufficient stock for {item_name}: "
        f"required {format_quantity(required)}, available {format_quantity(available)}"
    )


def success_response(data: Any = None, message: str = "Success") -> Dict:
    response = {"success": True, "message": message}
    if data is not None:
        if isinstance(data, dict):
            response.update(data)
        else:
            response["data"] = data
    return response


def error_response(message: str, code: str = "ERROR", details: Dict = None) -> Dict:
    return {
        "success": False,
        "message": message,
        "error_code": code,
        "details": details or {}
    }


def error_from_exception(error: ServiceError) -> Dict:
    return error_response(error.message, error.code, error.details)


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    if value is None:
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return default


def parse_quantity(value: Any, field: str = "quantity") -> Decimal:
    """Strict variant of to_decimal for caller input: garbage is an error, not zero."""
    if value is None or value == "":
        raise InvalidArgumentError(f"{field} is required", field)
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidArgumentError(f"{field} must be a number", field)
    if not result.is_finite():
        raise InvalidArgumentError(f"{field} must be a number", field)
    return result


def round_decimal(value: Decimal, places: int = 4) -> Decimal:
    if value is None:
        return Decimal("0")
    quantize_str = "0." + "0" * places
    return value.quantize(Decimal(quantize_str), rounding=ROUND_HALF_UP)


def format_quantity(value: Decimal) -> str:
    return f"{round_decimal(to_decimal(value), 3):.3f}"


class BaseService:
    """Tenant-scoped lookups shared by the stock services."""

    model = None

    @classmethod
    def scoped(cls, tenant_id: str):
        return cls.model.objects.filter(tenant_id=tenant_id)

