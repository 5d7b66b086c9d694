"""Pass file generation.

A .pkpass file is a ZIP archive containing:
- pass.json: The pass definition
- manifest.json: SHA-1 hashes of all files
- signature: PKCS#7 signature of the manifest (when a signer is configured)

Signing is delegated to a :class:`ManifestSigner` configured through
``settings.WALLET_MANIFEST_SIGNER``; the generator itself is pluggable through
``settings.WALLET_PASS_GENERATOR``.
"""

import hashlib
import io
import json
import typing as t
import zipfile

import structlog
from django.conf import settings
from django.utils.module_loading import import_string

from wallet.exceptions import PassGenerationError
from wallet.models import WalletPass

logger = structlog.get_logger(__name__)

PKPASS_CONTENT_TYPE = "application/vnd.apple.pkpass"

# pass.json style key for each template type
STYLE_KEYS: dict[str, str] = {
    WalletPass.TemplateType.BOARDING_PASS: "boardingPass",
    WalletPass.TemplateType.COUPON: "coupon",
    WalletPass.TemplateType.GENERIC: "generic",
    WalletPass.TemplateType.EVENT_TICKET: "eventTicket",
    WalletPass.TemplateType.STORE_CARD: "storeCard",
    WalletPass.TemplateType.LOYALTY_CARD: "storeCard",
}

# Top-level pass.json keys copied verbatim from the pass data when present
PASSTHROUGH_KEYS = (
    "foregroundColor",
    "backgroundColor",
    "labelColor",
    "logoText",
    "barcode",
    "barcodes",
    "locations",
    "relevantDate",
    "expirationDate",
    "voided",
    "authenticationToken",
)


class PassFileGenerator(t.Protocol):
    """Protocol for pass file generators."""

    content_type: str
    file_extension: str

    def generate(self, wallet_pass: WalletPass) -> bytes:
        """Generate the pass file for a stored pass.

        Raises:
            PassGenerationError: If the file cannot be produced.
        """
        ...


class ManifestSigner(t.Protocol):
    """Protocol for manifest signers."""

    def sign(self, manifest: bytes) -> bytes:
        """Return a detached PKCS#7 signature of the manifest."""
        ...


class PassBundleGenerator:
    """Builds .pkpass archives from stored pass data."""

    content_type = PKPASS_CONTENT_TYPE
    file_extension = "pkpass"

    def __init__(self, signer: ManifestSigner | None = None) -> None:
        """Initialize the generator.

        Args:
            signer: Signer for manifest.json. Defaults to the configured
                ``WALLET_MANIFEST_SIGNER``; without one the archive is unsigned.
        """
        if signer is None and settings.WALLET_MANIFEST_SIGNER:
            signer = t.cast(ManifestSigner, import_string(settings.WALLET_MANIFEST_SIGNER)())
        self.signer = signer

    def generate(self, wallet_pass: WalletPass) -> bytes:
        """Generate a .pkpass archive for a pass.

        Raises:
            PassGenerationError: If pass generation or signing fails.
        """
        try:
            files = {"pass.json": json.dumps(build_pass_definition(wallet_pass), indent=2).encode("utf-8")}

            manifest = create_manifest(files)
            files["manifest.json"] = manifest
            if self.signer is not None:
                files["signature"] = self.signer.sign(manifest)

            pkpass_bytes = create_archive(files)
        except (TypeError, ValueError, OSError) as e:
            logger.error("pass_generation_failed", pass_id=str(wallet_pass.id), error=str(e))
            raise PassGenerationError(f"Failed to generate pass: {e}") from e

        logger.info(
            "pass_generated",
            pass_type_identifier=wallet_pass.pass_type_identifier,
            serial_number=wallet_pass.serial_number,
            size=len(pkpass_bytes),
            signed=self.signer is not None,
        )
        return pkpass_bytes


def build_pass_definition(wallet_pass: WalletPass) -> dict[str, t.Any]:
    """Build the pass.json definition from a stored pass.

    Identity fields always come from the pass itself; descriptive fields fall
    back to configured defaults when the pass data does not provide them.
    """
    data: dict[str, t.Any] = wallet_pass.data or {}

    definition: dict[str, t.Any] = {
        "formatVersion": 1,
        "description": data.get("description") or "Pass",
        "organizationName": data.get("organizationName") or settings.WALLET_ORGANIZATION_NAME,
        "passTypeIdentifier": wallet_pass.pass_type_identifier,
        "serialNumber": wallet_pass.serial_number,
        "teamIdentifier": data.get("teamIdentifier") or settings.WALLET_TEAM_IDENTIFIER,
    }

    for key in PASSTHROUGH_KEYS:
        if data.get(key) not in (None, "", [], {}):
            definition[key] = data[key]

    style_keys = set(STYLE_KEYS.values())
    present_styles = [key for key in data if key in style_keys]
    if present_styles:
        for key in present_styles:
            definition[key] = data[key]
    else:
        definition[STYLE_KEYS[wallet_pass.template_type]] = {}

    web_service_url = get_web_service_url()
    if web_service_url:
        definition["webServiceURL"] = web_service_url

    return definition


def get_web_service_url() -> str | None:
    """Return the web service URL to embed in passes.

    Apple Wallet only talks to HTTPS web services, so a plain-HTTP URL is
    not embedded.
    """
    url = settings.WALLET_WEB_SERVICE_URL or f"{settings.BASE_URL.rstrip('/')}/api/wallet"
    return url if url.startswith("https://") else None


def create_manifest(files: dict[str, bytes]) -> bytes:
    """Create manifest.json with SHA-1 hashes of all pass files."""
    manifest = {
        filename: hashlib.sha1(content).hexdigest()
        for filename, content in files.items()
        if filename not in ("manifest.json", "signature")
    }
    return json.dumps(manifest, indent=2).encode("utf-8")


def create_archive(files: dict[str, bytes]) -> bytes:
    """Package pass files into a ZIP archive."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for filename, content in files.items():
            zf.writestr(filename, content)
    return buffer.getvalue()


_pass_generator: PassFileGenerator | None = None


def get_pass_generator() -> PassFileGenerator:
    """Get the configured pass file generator singleton."""
    global _pass_generator
    if _pass_generator is None:
        generator_class = import_string(settings.WALLET_PASS_GENERATOR)
        _pass_generator = t.cast(PassFileGenerator, generator_class())
    return _pass_generator
