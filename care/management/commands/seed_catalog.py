"""
Management command to load the lab test catalogue and starter stock.
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from care.models import LabTest, Medication

LAB_TESTS = [
    ("Complete Blood Count", "Hematology", "CBC with differential"),
    ("Malaria Rapid Test", "Parasitology", "Rapid diagnostic test for P. falciparum"),
    ("Blood Glucose", "Chemistry", "Random blood sugar"),
    ("Urinalysis", "Urine", "Dipstick and microscopy"),
    ("Stool Analysis", "Parasitology", "Ova, cysts and parasites"),
    ("Hemoglobin", "Hematology", "Hb level"),
    ("C-Reactive Protein", "Immunology", "Inflammation marker"),
    ("Blood Culture", "Microbiology", "Culture and sensitivity"),
]

MEDICATIONS = [
    ("Amoxicillin 250mg/5ml suspension", "bottles", 40),
    ("Paracetamol 120mg/5ml syrup", "bottles", 60),
    ("Oral Rehydration Salts", "sachets", 200),
    ("Zinc Sulphate 20mg", "tablets", 300),
    ("Artemether-Lumefantrine 20/120mg", "tablets", 15),
    ("Ibuprofen 100mg/5ml suspension", "bottles", 25),
]


class Command(BaseCommand):
    help = 'Load lab tests and starter medication stock (idempotent)'

    @transaction.atomic
    def handle(self, *args, **options):
        for name, category, description in LAB_TESTS:
            _, created = LabTest.objects.get_or_create(
                name=name, defaults={'category': category, 'description': description}
            )
            if created:
                self.stdout.write(f'lab test: {name}')
        for name, unit, stock in MEDICATIONS:
            _, created = Medication.objects.get_or_create(name=name, defaults={'unit': unit, 'stock': stock})
            if created:
                self.stdout.write(f'medication: {name} ({stock} {unit})')
        self.stdout.write(self.style.SUCCESS(
            f'Catalogue ready: {LabTest.objects.count()} lab tests, {Medication.objects.count()} medications.'
        ))
