"""
Bus Pass Backend — QR Codec Tests
"""

import base64
import json
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from buspass.exceptions import ValidationError
from buspass.services.qr_codec import QRCodec

VALID_FROM = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def bus_pass():
    return SimpleNamespace(
        id=uuid.uuid4(),
        pass_number="K7M2Q9XPLA",
        valid_from=VALID_FROM,
        valid_until=VALID_FROM + timedelta(days=7),
    )


class TestQRCodec:

    def setup_method(self):
        self.codec = QRCodec()

    def test_payload_text_uses_wire_names(self, bus_pass):
        user_id = uuid.uuid4()
        text = self.codec.to_text(self.codec.payload_for(bus_pass, user_id))

        data = json.loads(text)
        assert set(data) == {"passId", "passNumber", "userId", "validFrom", "validTo"}
        assert data["passNumber"] == "K7M2Q9XPLA"
        assert data["userId"] == str(user_id)

    def test_decode_returns_payload(self, bus_pass):
        user_id = uuid.uuid4()
        payload = self.codec.decode(self.codec.to_text(self.codec.payload_for(bus_pass, user_id)))

        assert payload.pass_id == bus_pass.id
        assert payload.user_id == user_id
        assert payload.valid_to == bus_pass.valid_until

    def test_encode_returns_png_data_url(self, bus_pass):
        url = self.codec.encode(self.codec.payload_for(bus_pass, uuid.uuid4()))

        prefix = "data:image/png;base64,"
        assert url.startswith(prefix)
        assert base64.b64decode(url[len(prefix):])[:8] == b"\x89PNG\r\n\x1a\n"

    @pytest.mark.parametrize(
        "text",
        ["", "plain text", "[]", json.dumps({"passNumber": "ABC"})],
    )
    def test_decode_rejects_non_payloads(self, text):
        with pytest.raises(ValidationError, match="valid bus pass"):
            self.codec.decode(text)
