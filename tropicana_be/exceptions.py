from tropicana_be.error_codes import ErrorCodes

class AppException(Exception):
    def __init__(self, error_code, status_message, status_code, details=None, action_button=None):
        super().__init__(status_message)
        self.error_code = error_code
        self.status_message = status_message
        self.status_code = status_code
        self.details = details if details is not None else {}
        self.action_button = action_button if action_button is not None else {}

class ValidationException(AppException):
    def __init__(self, status_message="Validation failed", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.VALIDATION_ERROR,
            status_message=status_message,
            status_code=422,
            details=details,
            action_button=action_button
        )

class InvalidBetAmountException(AppException):
    """Bet is not one of the allowed stakes. Raised before any debit."""
    def __init__(self, status_message="Invalid bet amount", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.INVALID_BET,
            status_message=status_message,
            status_code=422,
            details=details,
            action_button=action_button
        )

class InsufficientFundsException(AppException):
    """Balance is below the bet and no free spin is available. Nothing was mutated."""
    def __init__(self, status_message="Insufficient funds", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.INSUFFICIENT_FUNDS,
            status_message=status_message,
            status_code=400,
            details=details,
            action_button=action_button
        )

class ConcurrentSpinException(AppException):
    """A spin was requested while another one is still settling."""
    def __init__(self, status_message="A spin is already in progress", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.CONCURRENT_SPIN,
            status_message=status_message,
            status_code=409,
            details=details,
            action_button=action_button
        )
