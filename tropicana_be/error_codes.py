class ErrorCodes:
    GENERIC_ERROR = "BE_GEN_000"
    VALIDATION_ERROR = "BE_GEN_001"
    NOT_FOUND = "BE_GEN_004"
    METHOD_NOT_ALLOWED = "BE_GEN_005"
    RATE_LIMITED = "BE_GEN_029"
    INTERNAL_SERVER_ERROR = "BE_GEN_500"

    # Slot game
    INVALID_BET = "BE_SLOT_001"
    INSUFFICIENT_FUNDS = "BE_SLOT_002"
    CONCURRENT_SPIN = "BE_SLOT_003"
    AUTOSPIN_ERROR = "BE_SLOT_005"
