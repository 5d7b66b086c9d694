"""Apple Wallet web service configuration.

See: https://developer.apple.com/documentation/walletpasses/adding-a-web-service-to-update-passes
"""

from decouple import Csv, config

# Pass types served by this instance. Empty means any pass type is accepted.
WALLET_PASS_TYPE_IDENTIFIERS: list[str] = config("WALLET_PASS_TYPE_IDENTIFIERS", default="", cast=Csv())
WALLET_TEAM_IDENTIFIER: str = config("WALLET_TEAM_IDENTIFIER", default="")
WALLET_ORGANIZATION_NAME: str = config("WALLET_ORGANIZATION_NAME", default="Organization")
WALLET_WEB_SERVICE_URL: str = config("WALLET_WEB_SERVICE_URL", default="")

# Pluggable collaborators (dotted paths)
WALLET_PUSH_SENDER: str = config("WALLET_PUSH_SENDER", default="wallet.push.LoggingPushSender")
WALLET_PASS_GENERATOR: str = config("WALLET_PASS_GENERATOR", default="wallet.generator.PassBundleGenerator")
WALLET_MANIFEST_SIGNER: str = config("WALLET_MANIFEST_SIGNER", default="")

# Push fan-out
WALLET_PUSH_TIMEOUT: float = config("WALLET_PUSH_TIMEOUT", default=10.0, cast=float)
WALLET_PUSH_MAX_WORKERS: int = config("WALLET_PUSH_MAX_WORKERS", default=8, cast=int)

WALLET_DEVICE_LOG_RETENTION_DAYS: int = config("WALLET_DEVICE_LOG_RETENTION_DAYS", default=90, cast=int)
