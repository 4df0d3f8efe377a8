"""Clinic application for the GCH Healthcare backend.

This package contains the models, services, serializers and views for
appointments, QR check-in, the daily queue, consultations,
prescriptions, lab orders and medication supply.
"""
