from typing import Dict, Optional


class BillingError(Exception):
    """Base for every error the billing core reports to its caller."""

    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, str]] = None):
        self.message = message or self.default_message
        self.errors = errors or {}
        super().__init__(self.message)


class ValidationError(BillingError):
    status_code = 422
    default_message = "Validation failed"


class DuplicatePeriod(BillingError):
    status_code = 422
    default_message = "A meter reading already exists for this customer and period"


class InvalidReading(BillingError):
    status_code = 422
    default_message = "End index must not be lower than start index"


class NotFound(BillingError):
    status_code = 404
    default_message = "Not found"


class InvalidAmount(BillingError):
    status_code = 422
    default_message = "Amount must be greater than 0"


class Overpayment(BillingError):
    status_code = 422
    default_message = "Installment must not exceed the outstanding arrears"


class InvalidState(BillingError):
    status_code = 409
    default_message = "Operation not allowed in the current state"


class PersistenceError(BillingError):
    status_code = 500
    default_message = "Database operation failed"
