# care/management/commands/seed_users.py
from django.core.management.base import BaseCommand
from django.db import transaction

from care import rbac
from care.models import User
from care.services.accounts import ensure_role_record

DEMO_PASSWORD = "Gch-demo-2024"

SEED_SET = [
    ("admin", rbac.ADMIN, "Amina Otieno"),
    ("doctor", rbac.DOCTOR, "Daniel Mwangi"),
    ("receptionist", rbac.RECEPTIONIST, "Ruth Wanjiku"),
    ("lab", rbac.LAB_TECH, "Lucas Kiprop"),
    ("pharmacy", rbac.PHARMACIST, "Faith Achieng"),
    ("supplier", rbac.SUPPLIER, "Samuel Njoroge"),
    ("caregiver", rbac.CAREGIVER, "Grace Mutua"),
]


class Command(BaseCommand):
    help = "Ensure two demo users per role exist with the demo password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default=DEMO_PASSWORD)
        parser.add_argument("--domain", default="gch.example")

    @transaction.atomic
    def handle(self, *args, **opts):
        password = opts["password"]
        for prefix, role, name in SEED_SET:
            for n in (1, 2):
                email = f"{prefix}{n}@{opts['domain']}"
                u, created = User.objects.get_or_create(
                    username=email,
                    defaults={"email": email, "role": role, "full_name": f"{name} {n}", "is_active": True},
                )
                u.set_password(password)
                u.role = role
                u.is_active = True
                u.is_staff = role == rbac.ADMIN
                u.save(update_fields=["password", "role", "is_active", "is_staff"])
                ensure_role_record(u)
                self.stdout.write(self.style.SUCCESS(f"{'created' if created else 'ok'}: {email} ({role})"))
        self.stdout.write(self.style.SUCCESS("All demo users ensured."))
