"""
Check-in codes and QR payloads for appointments.

Every appointment can carry a short code such as ``GCH-7KQ2M`` that is
printed next to its QR image.  Receptionists either scan the QR (which
encodes a small JSON document) or type the code in by hand; both routes
end in :func:`resolve_scan`.
"""
from __future__ import annotations

import base64
import io
import json
import logging
import re
import secrets
import uuid
from typing import Optional

import qrcode
import qrcode.image.svg
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from care.models import Appointment

logger = logging.getLogger(__name__)

CODE_PREFIX = "GCH-"
CODE_LENGTH = 5
# No 0/O or 1/I so codes survive being read aloud or hand-copied
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_PATTERN = re.compile(r"^GCH-[A-HJ-NP-Z2-9]{5}$")
PAYLOAD_TYPE = "appointment_checkin"


def generate_check_in_code() -> str:
    return CODE_PREFIX + "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def is_valid_check_in_code(code: Optional[str]) -> bool:
    if not code:
        return False
    return bool(CODE_PATTERN.match(code.strip().upper()))


def ensure_check_in_code(appointment: Appointment) -> Optional[str]:
    """Give ``appointment`` a unique check-in code unless it already has one.

    A candidate is tried against the ``check_in_code`` column up to
    ``CHECKIN_CODE_ATTEMPTS`` times.  When every candidate collides the
    appointment is left without a code and ``None`` is returned; the QR
    payload still works because it carries the appointment id.
    """
    if appointment.check_in_code:
        return appointment.check_in_code
    attempts = getattr(settings, "CHECKIN_CODE_ATTEMPTS", 10)
    for _ in range(attempts):
        code = generate_check_in_code()
        if Appointment.objects.filter(check_in_code=code).exists():
            continue
        try:
            with transaction.atomic():
                updated = Appointment.objects.filter(pk=appointment.pk, check_in_code__isnull=True).update(
                    check_in_code=code
                )
        except IntegrityError:
            # lost a race for the same code
            continue
        if updated:
            appointment.check_in_code = code
            return code
        # someone else assigned a code in the meantime
        appointment.refresh_from_db(fields=["check_in_code"])
        return appointment.check_in_code
    logger.warning("no free check-in code for appointment %s after %s attempts", appointment.pk, attempts)
    return None


def build_qr_payload(appointment_id, code: Optional[str] = None) -> str:
    return json.dumps({
        "type": PAYLOAD_TYPE,
        "id": str(appointment_id),
        "code": code or None,
        "timestamp": timezone.now().isoformat(),
    })


def parse_qr_payload(text: Optional[str]) -> Optional[dict]:
    """Return the decoded payload, or ``None`` when ``text`` is not one of ours."""
    if not text:
        return None
    try:
        data = json.loads(text)
    except (TypeError, ValueError, RecursionError):
        return None
    if not isinstance(data, dict) or data.get("type") != PAYLOAD_TYPE or not data.get("id"):
        return None
    return data


def render_qr_data_url(payload: str) -> str:
    """Render ``payload`` as an SVG QR image wrapped in a ``data:`` URL."""
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=2,
        image_factory=qrcode.image.svg.SvgPathImage,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    buf = io.BytesIO()
    qr.make_image().save(buf)
    return "data:image/svg+xml;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def _is_uuid(text: str) -> bool:
    try:
        uuid.UUID(text)
    except (TypeError, ValueError, AttributeError):
        return False
    return True


def _appointments():
    return Appointment.objects.select_related("child", "caregiver__user", "doctor__user")


def _by_code(code: str) -> Appointment:
    appt = _appointments().filter(check_in_code=code.strip().upper()).first()
    if not appt:
        raise NotFound("Appointment not found for this check-in code")
    return appt


def _by_id(appointment_id) -> Appointment:
    if not _is_uuid(str(appointment_id)):
        raise ValidationError("Invalid appointment id")
    appt = _appointments().filter(pk=appointment_id).first()
    if not appt:
        raise NotFound("Appointment not found")
    return appt


def resolve_scan(raw: Optional[str]) -> Appointment:
    """Find the appointment behind a scanned QR text or a typed code.

    Accepted inputs, tried in order: a check-in code, a JSON payload
    (``id``/``appointmentId``, or a nested ``code``), a bare appointment
    UUID.  Anything else is a validation error.
    """
    text = (raw or "").strip()
    if not text:
        raise ValidationError("Scan data is required")
    if is_valid_check_in_code(text):
        return _by_code(text)
    try:
        data = json.loads(text)
    except (ValueError, RecursionError):
        data = None
    if isinstance(data, dict):
        appointment_id = data.get("id") or data.get("appointmentId")
        if appointment_id:
            return _by_id(appointment_id)
        if data.get("code"):
            return resolve_scan(str(data["code"]))
        raise ValidationError("QR payload does not reference an appointment")
    if _is_uuid(text):
        return _by_id(text)
    raise ValidationError("Unrecognised QR data or check-in code")
