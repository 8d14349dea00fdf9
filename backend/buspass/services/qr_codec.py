"""
Bus Pass Backend — QR Payload Codec
===================================

What:  Turns a pass into a scannable QR image and turns scanned text back
       into a typed payload.
How:   encode() serializes QRPayload as compact JSON and renders it with the
       `qrcode` library into a PNG data URL; decode() parses the text a
       scanner app read off that image.
Who:   Passenger pass-detail route (encode); conductor QR verification (decode).

The codec is a pure round trip. Whether the decoded pass is genuine, in its
validity window, or under its daily limit is decided by VerificationService.
"""

import base64
from io import BytesIO

import qrcode
from pydantic import ValidationError as PydanticValidationError

from buspass.exceptions import ValidationError
from buspass.models.bus_pass import BusPass
from buspass.schemas.verification import QRPayload


class QRCodec:
    def __init__(self, box_size: int = 10, border: int = 2):
        self.box_size = box_size
        self.border = border

    @staticmethod
    def payload_for(bus_pass: BusPass, user_id) -> QRPayload:
        return QRPayload(
            pass_id=bus_pass.id,
            pass_number=bus_pass.pass_number,
            user_id=user_id,
            valid_from=bus_pass.valid_from,
            valid_to=bus_pass.valid_until,
        )

    @staticmethod
    def to_text(payload: QRPayload) -> str:
        return payload.model_dump_json(by_alias=True)

    def encode(self, payload: QRPayload) -> str:
        """Returns a `data:image/png;base64,...` URL for the payload."""
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=self.box_size,
            border=self.border,
        )
        qr.add_data(self.to_text(payload))
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        buf = BytesIO()
        img.save(buf, format="PNG")
        return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")

    def decode(self, qr_data: str) -> QRPayload:
        """
        Parse scanned QR text.

        Raises:
            ValidationError: the text is not a pass payload
        """
        try:
            return QRPayload.model_validate_json(qr_data)
        except PydanticValidationError as e:
            raise ValidationError(
                message="QR code does not contain a valid bus pass",
                field="qr_data",
                context={"errors": e.error_count()},
            ) from e


qr_codec = QRCodec()
