from io import StringIO

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.contrib.auth import authenticate
from django.contrib.auth.models import AnonymousUser
from django.core.management import call_command
from django.urls import reverse

from care.models import AuditEvent, Doctor, LabTest, Medication, User
from care.realtime.consumers import UpdatesConsumer
from care.services import realtime
from care.services.audit import log_action

pytestmark = pytest.mark.django_db


def test_changes_are_broadcast_after_commit(make_user, client_for, child, django_capture_on_commit_callbacks,
                                            monkeypatch):
    sent = []
    monkeypatch.setattr(realtime, '_send', sent.append)
    client = client_for(make_user('receptionist'))
    with django_capture_on_commit_callbacks(execute=True):
        r = client.post(reverse('receptionist_queue'), {'childId': child.pk}, format='json')
    assert r.status_code == 201
    assert sent == [{
        'type': 'table.changed', 'table': 'check_ins', 'event': 'insert', 'id': str(r.data['checkIn']['id']),
    }]


def test_rolled_back_changes_are_not_broadcast(make_user, client_for, django_capture_on_commit_callbacks,
                                               monkeypatch):
    sent = []
    monkeypatch.setattr(realtime, '_send', sent.append)
    client = client_for(make_user('receptionist'))
    with django_capture_on_commit_callbacks(execute=True):
        r = client.post(reverse('receptionist_queue'), {'childId': 4242}, format='json')
    assert r.status_code == 404
    assert sent == []


def test_send_reaches_group_members():
    layer = get_channel_layer()
    channel = async_to_sync(layer.new_channel)()
    async_to_sync(layer.group_add)(realtime.GROUP, channel)
    event = {'type': 'table.changed', 'table': 'appointments', 'event': 'update', 'id': 'abc'}
    realtime._send(event)
    assert async_to_sync(layer.receive)(channel) == event


def socket_for(user, path='/ws/updates/'):
    consumer = UpdatesConsumer.as_asgi()

    async def app(scope, receive, send):
        return await consumer(dict(scope, user=user), receive, send)

    return WebsocketCommunicator(app, path)


def test_anonymous_socket_is_closed():
    async def scenario():
        socket = socket_for(AnonymousUser())
        connected, code = await socket.connect()
        await socket.disconnect()
        return connected, code

    assert async_to_sync(scenario)() == (False, 4401)


def test_socket_forwards_table_changes(make_user):
    user = make_user('receptionist')
    event = {'type': 'table.changed', 'table': 'check_ins', 'event': 'insert', 'id': '7'}

    async def scenario():
        socket = socket_for(user)
        connected, _ = await socket.connect()
        assert connected
        welcome = await socket.receive_json_from()
        await get_channel_layer().group_send(realtime.GROUP, event)
        received = await socket.receive_json_from()
        await socket.disconnect()
        return welcome, received

    welcome, received = async_to_sync(scenario)()
    assert welcome == {'type': 'welcome', 'role': 'receptionist'}
    assert received == event


def test_socket_table_filter(make_user):
    user = make_user('doctor')
    layer = get_channel_layer()

    async def scenario():
        socket = socket_for(user, '/ws/updates/?tables=check_ins,lab_orders')
        connected, _ = await socket.connect()
        assert connected
        await socket.receive_json_from()
        for table in ('appointments', 'lab_orders', 'prescriptions'):
            await layer.group_send(realtime.GROUP, {
                'type': 'table.changed', 'table': table, 'event': 'update', 'id': '1',
            })
        first = await socket.receive_json_from()
        quiet = await socket.receive_nothing()
        await socket.disconnect()
        return first, quiet

    first, quiet = async_to_sync(scenario)()
    assert first['table'] == 'lab_orders'
    assert quiet


def test_audit_log_stores_ids_as_text(make_user):
    user = make_user('admin')
    event = log_action(user=user, action='user_update', object_type='user', object_id=17, detail={'x': 1})
    assert event.object_id == '17'
    assert AuditEvent.objects.get(pk=event.pk).user == user
    anonymous = log_action(user=None, action='login', detail=None)
    assert anonymous.user is None
    assert anonymous.detail == {}


def test_seed_users_is_idempotent():
    out = StringIO()
    call_command('seed_users', '--password', 'Seed-Pass-2024', stdout=out)
    call_command('seed_users', '--password', 'Seed-Pass-2024', stdout=out)
    assert User.objects.count() == 14
    assert Doctor.objects.count() == 2
    admin = User.objects.get(username='admin1@gch.example')
    assert admin.is_staff
    assert authenticate(username='doctor2@gch.example', password='Seed-Pass-2024') is not None
    assert 'All demo users ensured.' in out.getvalue()


def test_seed_catalog_is_idempotent():
    call_command('seed_catalog', stdout=StringIO())
    tests, meds = LabTest.objects.count(), Medication.objects.count()
    call_command('seed_catalog', stdout=StringIO())
    assert tests > 0 and meds > 0
    assert (LabTest.objects.count(), Medication.objects.count()) == (tests, meds)
