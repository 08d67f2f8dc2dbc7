"""
Tests for core helpers.
"""

import uuid

import pytest

from core.helpers import sign_payload, validate_uuid, verify_signature


class TestValidateUuid:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (str(uuid.uuid4()), True),
            (uuid.uuid4(), True),
            ("not-a-uuid", False),
            ("", False),
            (None, False),
            (42, False),
        ],
    )
    def test_validate_uuid(self, value, expected):
        assert validate_uuid(value) is expected


class TestVerifySignature:
    """
    Verifies:
    - Signatures from sign_payload verify, with or without the sha256= prefix
    - Tampered bodies, wrong secrets and empty inputs never verify
    """

    body = b'{"domain": "order", "status": "created"}'

    def test_valid_signature(self):
        signature = sign_payload(self.body, "s3cret")

        assert verify_signature(self.body, signature, "s3cret")
        assert verify_signature(self.body, f"sha256={signature}", "s3cret")

    def test_tampered_body(self):
        signature = sign_payload(self.body, "s3cret")

        assert not verify_signature(self.body + b" ", signature, "s3cret")

    def test_wrong_secret(self):
        signature = sign_payload(self.body, "s3cret")

        assert not verify_signature(self.body, signature, "other")

    def test_empty_secret_or_signature(self):
        assert not verify_signature(self.body, sign_payload(self.body, "x"), "")
        assert not verify_signature(self.body, "", "s3cret")
        assert not verify_signature(self.body, None, "s3cret")
