import pytest
from django.urls import reverse
from rest_framework.exceptions import ValidationError

from care.models import LabOrder, Medication, Prescription, SupplyOrder
from care.services import lab as lab_svc
from care.services import supply as supply_svc

pytestmark = pytest.mark.django_db


@pytest.fixture
def doctor_client(client_for, doctor_user):
    return client_for(doctor_user)


@pytest.fixture
def pharmacist(make_user):
    return make_user('pharmacist', full_name='Ruth Pharm')


@pytest.fixture
def lab_tech(make_user):
    return make_user('lab_tech', full_name='Sam Lab')


@pytest.fixture
def supplier_user(make_user):
    return make_user('supplier', full_name='MedSupply Ltd')


def prescribe(client, child, **body):
    return client.post(reverse('doctor_create_prescription'), {'childId': child.pk, **body}, format='json')


# ---------------------------------------------------------------------
# Prescriptions
# ---------------------------------------------------------------------
def test_prescription_takes_name_from_medication(doctor_client, child, medication):
    r = prescribe(doctor_client, child, medicationId=medication.pk, dosage='5ml', frequency='3x daily',
                  duration='5 days', quantity=10)
    assert r.status_code == 201
    assert r.data['data']['medicationName'] == 'Amoxicillin 250mg'
    assert r.data['data']['status'] == 'pending'
    assert r.data['data']['doctorName'] == 'Grace Wanjiru'


def test_prescription_needs_a_medication(doctor_client, child):
    r = prescribe(doctor_client, child, dosage='5ml')
    assert r.status_code == 400
    assert 'medicationName' in r.data['error']['message']


def test_prescription_rejects_foreign_consultation(doctor_client, child):
    r = prescribe(doctor_client, child, medicationName='Paracetamol', consultationId=999)
    assert r.status_code == 400


def test_dispensing_deducts_stock(doctor_client, client_for, pharmacist, child, medication):
    rx = prescribe(doctor_client, child, medicationId=medication.pk, quantity=10).data['data']
    client = client_for(pharmacist)

    queue = client.get(reverse('pharmacy_queue')).data['data']
    assert [p['id'] for p in queue] == [rx['id']]

    url = reverse('pharmacy_prescription_status', args=[rx['id']])
    assert client.patch(url, {'status': 'preparing'}, format='json').status_code == 200
    r = client.patch(url, {'status': 'dispensed'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['dispensedAt']
    assert r.data['data']['pharmacist'] == 'Ruth Pharm'

    medication.refresh_from_db()
    assert medication.stock == 40
    assert client.get(reverse('pharmacy_queue')).data['data'] == []
    assert [p['id'] for p in client.get(reverse('pharmacy_dispensed')).data['data']] == [rx['id']]

    r = client.patch(url, {'status': 'pending'}, format='json')
    assert r.status_code == 400


def test_dispensing_more_than_stock_fails(doctor_client, client_for, pharmacist, child, medication):
    rx = prescribe(doctor_client, child, medicationId=medication.pk, quantity=51).data['data']
    r = client_for(pharmacist).patch(
        reverse('pharmacy_prescription_status', args=[rx['id']]), {'status': 'dispensed'}, format='json'
    )
    assert r.status_code == 400
    medication.refresh_from_db()
    assert medication.stock == 50
    assert Prescription.objects.get(pk=rx['id']).status == 'pending'


def test_free_text_prescription_dispenses_without_stock(doctor_client, client_for, pharmacist, child):
    rx = prescribe(doctor_client, child, medicationName='ORS sachets', quantity=3).data['data']
    r = client_for(pharmacist).patch(
        reverse('pharmacy_prescription_status', args=[rx['id']]), {'status': 'dispensed'}, format='json'
    )
    assert r.status_code == 200


def test_invalid_prescription_status(doctor_client, client_for, pharmacist, child):
    rx = prescribe(doctor_client, child, medicationName='Zinc').data['data']
    r = client_for(pharmacist).patch(
        reverse('pharmacy_prescription_status', args=[rx['id']]), {'status': 'lost'}, format='json'
    )
    assert r.status_code == 400


# ---------------------------------------------------------------------
# Lab
# ---------------------------------------------------------------------
def order_tests(client, child, test_ids, **body):
    return client.post(reverse('doctor_create_lab_orders'), {'childId': child.pk, 'testIds': test_ids, **body},
                       format='json')


def test_lab_order_per_test(doctor_client, child, lab_tests):
    ids = [t.pk for t in lab_tests]
    r = order_tests(doctor_client, child, ids + ids[:1], priority='urgent', clinicalNotes='Fever 3 days')
    assert r.status_code == 201
    assert [o['testName'] for o in r.data['data']] == ['Complete Blood Count', 'Malaria Smear']
    assert {o['priority'] for o in r.data['data']} == {'urgent'}
    assert LabOrder.objects.count() == 2


def test_lab_order_validation(doctor_client, child, lab_tests):
    assert order_tests(doctor_client, child, []).status_code == 400
    assert order_tests(doctor_client, child, [lab_tests[0].pk], priority='asap').status_code == 400
    r = order_tests(doctor_client, child, [lab_tests[0].pk, 9999])
    assert r.status_code == 400
    assert LabOrder.objects.count() == 0


def test_lab_catalog_for_doctors(doctor_client, lab_tests):
    r = doctor_client.get(reverse('doctor_lab_tests'))
    assert [t['name'] for t in r.data['data']] == ['Complete Blood Count', 'Malaria Smear']


def test_lab_order_lifecycle(doctor_client, client_for, lab_tech, child, lab_tests, caregiver_user):
    order = order_tests(doctor_client, child, [lab_tests[0].pk]).data['data'][0]
    client = client_for(lab_tech)
    url = reverse('lab_order_status', args=[order['id']])

    assert [o['id'] for o in client.get(reverse('lab_worklist')).data['data']] == [order['id']]
    assert client.get(reverse('lab_results_queue')).data['data'] == []

    assert client.patch(url, {'status': 'in_progress'}, format='json').status_code == 400
    r = client.patch(url, {'status': 'collected'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['collectedAt']
    assert r.data['data']['technician'] == 'Sam Lab'
    assert [o['id'] for o in client.get(reverse('lab_results_queue')).data['data']] == [order['id']]

    results_url = reverse('lab_save_results', args=[order['id']])
    assert client.post(results_url, {'results': '   '}, format='json').status_code == 400
    r = client.post(results_url, {
        'results': 'Hb 11.2 g/dL', 'abnormalFindings': 'Mild anaemia', 'resultNotes': 'Repeat in 4 weeks',
    }, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'completed'
    assert r.data['data']['completedAt']
    assert r.data['data']['processingStartedAt']

    assert client.post(results_url, {'results': 'again'}, format='json').status_code == 400
    assert [o['id'] for o in client.get(reverse('lab_completed')).data['data']] == [order['id']]
    assert client.get(reverse('lab_worklist')).data['data'] == []

    records = client_for(caregiver_user).get(reverse('caregiver_child_records', args=[child.pk])).data
    assert records['labOrders'][0]['results'] == 'Hb 11.2 g/dL'


def test_lab_status_walks_through_processing(doctor_client, lab_tech, child, lab_tests):
    order = order_tests(doctor_client, child, [lab_tests[0].pk]).data['data'][0]
    assert lab_svc._can_transition('pending', 'completed') is False
    lab_svc.update_status(order['id'], 'collected', by=lab_tech)
    lab_svc.update_status(order['id'], 'in_progress', by=lab_tech)
    updated = lab_svc.update_status(order['id'], 'completed', by=lab_tech)
    assert updated.completed_at is not None


# ---------------------------------------------------------------------
# Inventory and supply orders
# ---------------------------------------------------------------------
@pytest.fixture
def supplied_medication(supplier_user):
    return Medication.objects.create(name='Paracetamol syrup', stock=100, unit='bottles',
                                     supplier=supplier_user.supplier)


def test_inventory_lists_low_stock(client_for, pharmacist, settings):
    settings.LOW_STOCK_THRESHOLD = 20
    Medication.objects.create(name='Zinc tablets', stock=5)
    client = client_for(pharmacist)
    r = client.post(reverse('pharmacy_inventory'), {'name': 'ORS sachets', 'stock': 80, 'unit': 'sachets'},
                    format='json')
    assert r.status_code == 201
    data = {m['name']: m for m in client.get(reverse('pharmacy_inventory')).data['data']}
    assert data['Zinc tablets']['lowStock'] is True
    assert data['ORS sachets']['lowStock'] is False


def test_restock_quantity_must_be_positive(client_for, pharmacist, supplied_medication):
    r = client_for(pharmacist).post(reverse('pharmacy_orders'),
                                    {'medicationId': supplied_medication.pk, 'quantity': 0}, format='json')
    assert r.status_code == 400


def test_supplier_order_cycle(client_for, pharmacist, supplier_user, supplied_medication):
    pharmacy = client_for(pharmacist)
    r = pharmacy.post(reverse('pharmacy_orders'), {'medicationId': supplied_medication.pk, 'quantity': 30},
                      format='json')
    assert r.status_code == 201
    order_id = r.data['data']['id']
    assert r.data['data']['supplierId'] == supplier_user.pk

    supplier = client_for(supplier_user)
    assert [o['id'] for o in supplier.get(reverse('supplier_orders')).data['data']] == [order_id]

    r = supplier.patch(reverse('supplier_orders'), {'orderId': order_id, 'status': 'delivered'}, format='json')
    assert r.status_code == 400

    r = supplier.patch(reverse('supplier_orders'), {'orderId': order_id, 'status': 'approved'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['medicationStock'] == 70

    r = supplier.patch(reverse('supplier_orders'), {'orderId': order_id, 'status': 'rejected'}, format='json')
    assert r.status_code == 400

    r = supplier.patch(reverse('supplier_orders'), {'orderId': order_id, 'status': 'delivered'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'delivered'
    assert r.data['data']['deliveredAt']
    supplied_medication.refresh_from_db()
    assert supplied_medication.stock == 100


def test_approval_needs_stock(supplier_user, supplied_medication):
    order = supply_svc.request_restock(supplied_medication.pk, 150)
    with pytest.raises(ValidationError):
        supply_svc.set_order_status(supplier_user.supplier, order.pk, 'approved')
    order.refresh_from_db()
    assert order.status == SupplyOrder.STATUS_PENDING


def test_supplier_cannot_touch_other_orders(make_user, client_for, supplied_medication):
    order = supply_svc.request_restock(supplied_medication.pk, 10)
    rival = make_user('supplier', full_name='Rival Pharma')
    r = client_for(rival).patch(reverse('supplier_orders'), {'orderId': order.pk, 'status': 'approved'},
                                format='json')
    assert r.status_code == 403


def test_pharmacist_marks_order_received(client_for, pharmacist, supplied_medication):
    order = supply_svc.request_restock(supplied_medication.pk, 25, by=pharmacist)
    client = client_for(pharmacist)
    url = reverse('pharmacy_receive_order', args=[order.pk])
    r = client.post(url)
    assert r.status_code == 200
    assert r.data['data']['status'] == 'delivered'
    assert r.data['data']['medicationStock'] == 125
    assert client.post(url).status_code == 400


def test_supplier_medications_and_analytics(client_for, supplier_user, supplied_medication, settings):
    settings.LOW_STOCK_THRESHOLD = 20
    client = client_for(supplier_user)
    r = client.post(reverse('supplier_medications'), {'name': 'Iron drops', 'stock': 4}, format='json')
    assert r.status_code == 201
    assert r.data['data']['supplierId'] == supplier_user.pk

    orders = [supply_svc.request_restock(supplied_medication.pk, 5) for _ in range(3)]
    supply_svc.set_order_status(supplier_user.supplier, orders[0].pk, 'approved')
    supply_svc.set_order_status(supplier_user.supplier, orders[0].pk, 'delivered')
    supply_svc.set_order_status(supplier_user.supplier, orders[1].pk, 'rejected')

    data = client.get(reverse('supplier_analytics')).data
    assert data['summary'] == {'totalOrders': 3, 'deliveryRate': 33, 'lowStockCount': 1, 'activeInventory': 2}
    assert data['statusCounts'] == {'delivered': 1, 'rejected': 1, 'pending': 1}
    assert data['inventoryHealth'][0] == {'name': 'Iron drops', 'stock': 4, 'status': 'Critical'}
