class WalletError(Exception):
    """Base exception for wallet errors."""


class PassNotFoundError(WalletError):
    """Raised when no pass exists for a pass type identifier and serial number."""

    def __init__(self, pass_type_identifier: str, serial_number: str) -> None:
        super().__init__(f"Pass not found: {pass_type_identifier}/{serial_number}")
        self.pass_type_identifier = pass_type_identifier
        self.serial_number = serial_number


class InvalidPushTokenError(WalletError):
    """Raised when a push token is not 64 hexadecimal characters."""


class PassGenerationError(WalletError):
    """Raised when a pass file cannot be generated."""
