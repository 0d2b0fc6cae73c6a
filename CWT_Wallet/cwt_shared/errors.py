class WalletError(Exception):
    code = "WALLET_ERROR"


class DestinationExistsError(WalletError):
    code = "DESTINATION_EXISTS"

    def __init__(self, path):
        self.path = str(path)
        message = f"File {self.path} is not empty"
        super().__init__(message)


class InvalidPasswordError(WalletError):
    code = "INVALID_PASSWORD"

    def __init__(self):
        super().__init__("Invalid password")


class PasswordRequiredError(WalletError):
    code = "PASSWORD_REQUIRED"

    def __init__(self):
        super().__init__("Password not set: enter it at startup")


class MissingOrEmptyFileError(WalletError):
    code = "MISSING_OR_EMPTY_FILE"

    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = reason
        message = f"Wallet file {self.path} {reason}"
        super().__init__(message)


class InvalidVaultFileError(WalletError):
    code = "INVALID_VAULT_FILE"

    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = reason
        message = f"Invalid wallet file {self.path}: {reason}"
        super().__init__(message)


class InvalidAmountFormatError(WalletError):
    code = "INVALID_AMOUNT_FORMAT"

    def __init__(self, text, reason):
        self.text = text
        self.reason = reason
        message = f"Invalid amount {text!r}: {reason}"
        super().__init__(message)


class InvalidAddressError(WalletError):
    code = "INVALID_ADDRESS"

    def __init__(self, address):
        self.address = address
        message = f"Invalid Solana address {address!r}"
        super().__init__(message)


class KeyMismatchError(WalletError):
    code = "KEY_MISMATCH"

    def __init__(self, address):
        self.address = address
        message = f"Private key does not match address {address}"
        super().__init__(message)


class InsufficientBalanceError(WalletError):
    code = "INSUFFICIENT_BALANCE"

    def __init__(self, currency, required, available, decimals, detail=""):
        from CWT_Wallet.cwt_shared.amounts import format_amount

        self.currency = currency
        self.required = required
        self.available = available
        self.decimals = decimals
        message = (
            f"Insufficient {currency} balance: need {format_amount(required, decimals)} {currency}, "
            f"have {format_amount(available, decimals)} {currency}"
        )
        if detail:
            message = f"{message}. {detail}"
        super().__init__(message)


class CooldownActiveError(WalletError):
    code = "COOLDOWN_ACTIVE"

    def __init__(self, remaining_seconds):
        self.remaining_seconds = remaining_seconds
        message = f"Cooldown active, please wait {round(remaining_seconds)}s"
        super().__init__(message)


class TokenAccountNotProvisionedError(WalletError):
    code = "TOKEN_ACCOUNT_NOT_PROVISIONED"

    def __init__(self, address, min_funding_lamports):
        from CWT_Wallet.cwt_shared.amounts import lamports_to_sol

        self.address = address
        self.min_funding_lamports = min_funding_lamports
        message = (
            f"USDC token account not found for address {address}. Deposit any amount of USDC "
            f"to this address to create it (requires rent exempt: "
            f"{lamports_to_sol(min_funding_lamports)} SOL from the sender)"
        )
        super().__init__(message)


class UpstreamUnavailableError(WalletError):
    code = "UPSTREAM_UNAVAILABLE"

    def __init__(self, operation, detail):
        self.operation = operation
        self.detail = str(detail)
        message = f"{operation} failed: {self.detail}"
        super().__init__(message)


class InvalidQueryError(WalletError):
    code = "INVALID_QUERY"

    def __init__(self, reason):
        self.reason = reason
        super().__init__(reason)
