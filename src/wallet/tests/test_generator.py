"""Tests for wallet/generator.py."""

import hashlib
import io
import json
import typing as t
import zipfile
from unittest.mock import MagicMock, patch

import pytest

from wallet.exceptions import PassGenerationError
from wallet.generator import (
    PKPASS_CONTENT_TYPE,
    PassBundleGenerator,
    build_pass_definition,
    create_manifest,
    get_pass_generator,
    get_web_service_url,
)
from wallet.models import WalletPass

from .conftest import PASS_TYPE_ID

pytestmark = pytest.mark.django_db


def _open(pkpass: bytes) -> zipfile.ZipFile:
    return zipfile.ZipFile(io.BytesIO(pkpass))


class TestBuildPassDefinition:
    def test_identity_fields_come_from_pass(self, wallet_pass: WalletPass, settings: t.Any) -> None:
        settings.WALLET_TEAM_IDENTIFIER = "TEAM123"
        settings.WALLET_ORGANIZATION_NAME = "Example Org"

        definition = build_pass_definition(wallet_pass)

        assert definition["formatVersion"] == 1
        assert definition["passTypeIdentifier"] == PASS_TYPE_ID
        assert definition["serialNumber"] == wallet_pass.serial_number
        assert definition["teamIdentifier"] == "TEAM123"
        assert definition["organizationName"] == "Example Org"
        assert definition["description"] == "Concert"

    def test_style_section_from_data(self, wallet_pass: WalletPass) -> None:
        definition = build_pass_definition(wallet_pass)

        assert definition["eventTicket"] == wallet_pass.data["eventTicket"]

    def test_empty_style_section_from_template(self) -> None:
        wallet_pass = WalletPass(
            pass_type_identifier=PASS_TYPE_ID,
            serial_number="S1",
            data={},
            template_type=WalletPass.TemplateType.LOYALTY_CARD,
        )

        definition = build_pass_definition(wallet_pass)

        assert definition["storeCard"] == {}
        assert definition["description"] == "Pass"

    def test_passthrough_keys(self) -> None:
        wallet_pass = WalletPass(
            pass_type_identifier=PASS_TYPE_ID,
            serial_number="S1",
            data={
                "backgroundColor": "rgb(0, 0, 0)",
                "barcodes": [{"format": "PKBarcodeFormatQR", "message": "S1"}],
                "authenticationToken": "vxwxd7J8AlNNFPS8k0a0FfUFtq0ewzFdc",
                "logoText": "",
                "unknownKey": "ignored",
            },
        )

        definition = build_pass_definition(wallet_pass)

        assert definition["backgroundColor"] == "rgb(0, 0, 0)"
        assert definition["barcodes"][0]["message"] == "S1"
        assert definition["authenticationToken"] == "vxwxd7J8AlNNFPS8k0a0FfUFtq0ewzFdc"
        assert "logoText" not in definition
        assert "unknownKey" not in definition


class TestGetWebServiceUrl:
    def test_https_url_is_used(self, settings: t.Any) -> None:
        settings.WALLET_WEB_SERVICE_URL = "https://wallet.example.com/api/wallet"

        assert get_web_service_url() == "https://wallet.example.com/api/wallet"

    def test_defaults_to_base_url(self, settings: t.Any) -> None:
        settings.WALLET_WEB_SERVICE_URL = ""
        settings.BASE_URL = "https://example.com/"

        assert get_web_service_url() == "https://example.com/api/wallet"

    def test_plain_http_is_not_embedded(self, settings: t.Any) -> None:
        settings.WALLET_WEB_SERVICE_URL = "http://localhost:8000/api/wallet"

        assert get_web_service_url() is None


class TestPassBundleGenerator:
    def test_archive_contents(self, wallet_pass: WalletPass, settings: t.Any) -> None:
        settings.WALLET_MANIFEST_SIGNER = ""

        pkpass = PassBundleGenerator().generate(wallet_pass)

        with _open(pkpass) as zf:
            assert set(zf.namelist()) == {"pass.json", "manifest.json"}
            pass_json = zf.read("pass.json")
            manifest = json.loads(zf.read("manifest.json"))

        assert json.loads(pass_json)["serialNumber"] == wallet_pass.serial_number
        assert manifest == {"pass.json": hashlib.sha1(pass_json).hexdigest()}

    def test_signed_archive(self, wallet_pass: WalletPass) -> None:
        signer = MagicMock()
        signer.sign.return_value = b"signature-bytes"

        pkpass = PassBundleGenerator(signer=signer).generate(wallet_pass)

        with _open(pkpass) as zf:
            assert zf.read("signature") == b"signature-bytes"
            signer.sign.assert_called_once_with(zf.read("manifest.json"))

    def test_signer_failure_raises_generation_error(self, wallet_pass: WalletPass) -> None:
        signer = MagicMock()
        signer.sign.side_effect = ValueError("bad key")

        with pytest.raises(PassGenerationError):
            PassBundleGenerator(signer=signer).generate(wallet_pass)

    def test_content_type(self) -> None:
        assert PassBundleGenerator.content_type == PKPASS_CONTENT_TYPE
        assert PassBundleGenerator.file_extension == "pkpass"


def test_create_manifest_skips_manifest_and_signature() -> None:
    manifest = json.loads(create_manifest({"pass.json": b"{}", "manifest.json": b"x", "signature": b"y"}))

    assert list(manifest) == ["pass.json"]


class TestGetPassGenerator:
    def test_caches_generator(self) -> None:
        with patch("wallet.generator.import_string") as mock_import:
            mock_import.return_value = MagicMock

            first = get_pass_generator()
            second = get_pass_generator()

        assert first is second
        mock_import.assert_called_once()
