from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

from care.models import Appointment, Child, Doctor, User
from care.services.appointments import day_bounds
from care.services.patients import age_in_years

AGE_BUCKETS = (
    ('0-2 years', 2),
    ('3-5 years', 5),
    ('6-10 years', 10),
    ('11-15 years', 15),
    ('16-18 years', 18),
)


def percent(part: float, whole: float) -> int:
    """Whole-number percentage, halves rounded up; 0 when ``whole`` is 0."""
    if not whole:
        return 0
    return math.floor(part / whole * 100 + 0.5)


def admin_stats(now: Optional[datetime] = None) -> dict:
    now = now or timezone.now()
    week_ago = now - timedelta(days=7)
    two_weeks_ago = now - timedelta(days=14)

    this_week = Appointment.objects.filter(scheduled_for__gte=week_ago)
    this_week_count = this_week.count()
    last_week_count = Appointment.objects.filter(
        scheduled_for__gte=two_weeks_ago, scheduled_for__lt=week_ago
    ).count()
    completed = this_week.filter(status=Appointment.STATUS_COMPLETED).count()

    growth = percent(this_week_count - last_week_count, last_week_count)
    return {
        'totalUsers': User.objects.count(),
        'totalAppointments': Appointment.objects.count(),
        'totalChildren': Child.objects.count(),
        'totalDoctors': Doctor.objects.count(),
        'appointmentGrowth': f'+{growth}%' if growth > 0 else f'{growth}%',
        'completionRate': f'{percent(completed, this_week_count)}%',
    }


def appointment_analytics(today: Optional[date] = None) -> list[dict]:
    """Appointments per local day for the last seven days, oldest first."""
    today = today or timezone.localdate()
    rows = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        start, end = day_bounds(day)
        qs = Appointment.objects.filter(scheduled_for__gte=start, scheduled_for__lt=end)
        rows.append({
            'day': day.strftime('%a'),
            'total': qs.count(),
            'completed': qs.filter(status=Appointment.STATUS_COMPLETED).count(),
        })
    return rows


def demographics(today: Optional[date] = None) -> list[dict]:
    today = today or timezone.localdate()
    counts = {name: 0 for name, _ in AGE_BUCKETS}
    for dob in Child.objects.exclude(dob__isnull=True).values_list('dob', flat=True):
        age = age_in_years(dob, today)
        for name, upper in AGE_BUCKETS:
            if age <= upper:
                counts[name] += 1
                break
    return [{'name': name, 'value': value} for name, value in counts.items()]


def recent_activity(limit: Optional[int] = None) -> list[dict]:
    limit = limit or getattr(settings, 'RECENT_ACTIVITY_LIMIT', 5)
    qs = Appointment.objects.select_related('child', 'caregiver__user').order_by('-created_at')[:limit]
    return [
        {
            'id': str(a.id),
            'scheduledFor': a.scheduled_for.isoformat(),
            'status': a.status,
            'createdAt': a.created_at.isoformat(),
            'childName': a.child.full_name if a.child else None,
            'caregiverName': a.caregiver.user.display_name if a.caregiver else None,
        }
        for a in qs
    ]
