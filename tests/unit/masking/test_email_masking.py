"""
Tests for partial masking of contact details and payment URLs.
"""

import pytest

from jasaweb.core.masking import MaskingEngine


@pytest.fixture
def engine() -> MaskingEngine:
    return MaskingEngine()


class TestEmailMasking:
    """Emails keep the first and last local characters and the domain."""

    def test_standard_email(self, engine: MaskingEngine):
        masked = engine.mask({"email": "budi.santoso@example.com"})
        assert masked["email"] == "b*****o@example.com"

    def test_short_local_part(self, engine: MaskingEngine):
        masked = engine.mask({"email": "ab@sekolah.sch.id"})
        assert masked["email"] == "****@sekolah.sch.id"

    def test_star_count_tracks_short_locals(self, engine: MaskingEngine):
        masked = engine.mask({"email": "siti@berita.test"})
        assert masked["email"] == "s**i@berita.test"

    def test_not_an_email(self, engine: MaskingEngine):
        assert engine.mask({"email": "no-at-sign"})["email"] == "****"

    def test_substring_key(self, engine: MaskingEngine):
        masked = engine.mask({"user_email": "budi.santoso@example.com"})
        assert masked["user_email"] == "b*****o@example.com"

    def test_empty_value(self, engine: MaskingEngine):
        assert engine.mask({"email": ""})["email"] == "****"


class TestOtherPartialRules:
    """Phone numbers and QRIS links."""

    def test_phone_keeps_last_four(self, engine: MaskingEngine):
        assert engine.mask({"phone": "081234567890"})["phone"] == "****7890"

    def test_short_phone_fully_masked(self, engine: MaskingEngine):
        assert engine.mask({"phone": "1234"})["phone"] == "****"

    def test_qris_url_keeps_prefix(self, engine: MaskingEngine):
        url = "https://api.sandbox.midtrans.com/v2/qris/abc-123/qr-code"

        masked = engine.mask({"qris_url": url})

        assert masked["qris_url"] == url[:24] + "****"

    def test_partial_rule_inside_list(self, engine: MaskingEngine):
        masked = engine.mask({"members": [{"email": "budi.santoso@example.com", "role": "client"}]})
        assert masked["members"][0] == {"email": "b*****o@example.com", "role": "client"}
