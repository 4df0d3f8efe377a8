"""
URL mappings for the GCH Healthcare API.

Paths are grouped by portal.  Trailing slashes are deliberately omitted
(``APPEND_SLASH`` is off) to match the front-end client.
"""
from django.urls import include, path

from .auth_views import jwt_logout_view, jwt_refresh_view, login_view, me_view, register_view
from .views import admin_portal, caregiver, doctor, health, lab, pharmacy, qr, receptionist, supplier

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),

    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/register', register_view, name='register_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh_view'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout_view'),
    path('api/auth/me', me_view, name='me_view'),

    # QR codes
    path('api/qr/<str:appointment_id>', qr.appointment_qr, name='appointment_qr'),

    # Shared directory
    path('api/doctors', admin_portal.doctors, name='doctors'),

    # Caregiver portal
    path('api/caregiver/dashboard', caregiver.dashboard, name='caregiver_dashboard'),
    path('api/caregiver/children', caregiver.children, name='caregiver_children'),
    path('api/caregiver/children/<int:child_id>', caregiver.child_update, name='caregiver_child_update'),
    path('api/caregiver/children/<int:child_id>/records', caregiver.child_records, name='caregiver_child_records'),
    path('api/caregiver/appointments', caregiver.appointments, name='caregiver_appointments'),
    path('api/caregiver/appointments/upcoming', caregiver.upcoming_appointments, name='caregiver_upcoming'),
    path('api/caregiver/appointments/<str:appointment_id>/cancel', caregiver.cancel_appointment,
         name='caregiver_cancel_appointment'),

    # Reception desk
    path('api/receptionist/appointments', receptionist.todays_appointments, name='receptionist_appointments'),
    path('api/receptionist/appointments/create', receptionist.create_appointment,
         name='receptionist_create_appointment'),
    path('api/receptionist/scan', receptionist.scan_lookup, name='receptionist_scan'),
    path('api/receptionist/search', receptionist.search, name='receptionist_search'),
    path('api/receptionist/queue', receptionist.queue, name='receptionist_queue'),
    path('api/receptionist/queue/<int:check_in_id>', receptionist.queue_item, name='receptionist_queue_item'),

    # Doctor portal
    path('api/doctor/queue', doctor.queue, name='doctor_queue'),
    path('api/doctor/queue/<int:check_in_id>/start', doctor.start_consultation, name='doctor_start_consultation'),
    path('api/doctor/queue/<int:check_in_id>/complete', doctor.complete_consultation,
         name='doctor_complete_consultation'),
    path('api/doctor/consultations', doctor.consultations, name='doctor_consultations'),
    path('api/doctor/schedule', doctor.schedule, name='doctor_schedule'),
    path('api/doctor/prescriptions', doctor.create_prescription, name='doctor_create_prescription'),
    path('api/doctor/lab-tests', doctor.lab_tests, name='doctor_lab_tests'),
    path('api/doctor/lab-orders', doctor.create_lab_orders, name='doctor_create_lab_orders'),

    # Lab
    path('api/lab/orders', lab.worklist, name='lab_worklist'),
    path('api/lab/results', lab.results_queue, name='lab_results_queue'),
    path('api/lab/completed', lab.completed, name='lab_completed'),
    path('api/lab/orders/<int:order_id>', lab.order_status, name='lab_order_status'),
    path('api/lab/orders/<int:order_id>/results', lab.save_results, name='lab_save_results'),

    # Pharmacy
    path('api/pharmacy/prescriptions', pharmacy.prescription_queue, name='pharmacy_queue'),
    path('api/pharmacy/prescriptions/<int:prescription_id>', pharmacy.prescription_status,
         name='pharmacy_prescription_status'),
    path('api/pharmacy/dispensed', pharmacy.dispensed, name='pharmacy_dispensed'),
    path('api/pharmacy/inventory', pharmacy.inventory, name='pharmacy_inventory'),
    path('api/pharmacy/orders', pharmacy.supply_orders, name='pharmacy_orders'),
    path('api/pharmacy/orders/<int:order_id>/receive', pharmacy.receive_order, name='pharmacy_receive_order'),

    # Supplier portal
    path('api/supplier/medications', supplier.medications, name='supplier_medications'),
    path('api/supplier/orders', supplier.orders, name='supplier_orders'),
    path('api/supplier/analytics', supplier.analytics, name='supplier_analytics'),

    # Administration
    path('api/admin/stats', admin_portal.stats, name='admin_stats'),
    path('api/admin/analytics/appointments', admin_portal.appointment_analytics, name='admin_appointment_analytics'),
    path('api/admin/analytics/demographics', admin_portal.demographics, name='admin_demographics'),
    path('api/admin/recent-activity', admin_portal.recent_activity, name='admin_recent_activity'),
    path('api/admin/appointments', admin_portal.appointments, name='admin_appointments'),
    path('api/admin/appointments/<str:appointment_id>', admin_portal.appointment_detail,
         name='admin_appointment_detail'),
    path('api/admin/caregivers', admin_portal.caregivers, name='admin_caregivers'),
    path('api/admin/children', admin_portal.children, name='admin_children'),
    path('api/admin/staff', admin_portal.staff, name='admin_staff'),
    path('api/admin/staff/<int:user_id>', admin_portal.staff_detail, name='admin_staff_detail'),
    path('api/admin/users', admin_portal.users, name='admin_users'),
    path('api/admin/users/<int:user_id>', admin_portal.user_detail, name='admin_user_detail'),
]
