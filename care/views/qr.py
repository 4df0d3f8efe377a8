from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle

from care.services.appointments import get_appointment
from care.services.qr import build_qr_payload, ensure_check_in_code, render_qr_data_url


@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes([ScopedRateThrottle])
def appointment_qr(request, appointment_id):
    """QR image and check-in code for an appointment.  No login required."""
    appt = get_appointment(appointment_id)
    code = ensure_check_in_code(appt)
    payload = build_qr_payload(appt.id, code)
    return Response({
        'ok': True,
        'qrCode': render_qr_data_url(payload),
        'appointmentId': str(appt.id),
        'checkInCode': code,
        'status': appt.status,
    })

appointment_qr.cls.throttle_scope = 'qr'
