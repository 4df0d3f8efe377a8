"""
Pharmacy: prescription queue, dispensing and stock.
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.models import SupplyOrder
from care.permissions import IsPharmacyRole
from care.serializers.clinical import StatusUpdateSerializer
from care.serializers.supply import MedicationCreateSerializer, RestockSerializer
from care.services import prescriptions as rx_svc
from care.services import supply as supply_svc


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPharmacyRole])
def prescription_queue(request):
    return Response({'ok': True, 'data': [rx_svc.prescription_dict(p) for p in rx_svc.pharmacy_queue()]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPharmacyRole])
def dispensed(request):
    return Response({'ok': True, 'data': [rx_svc.prescription_dict(p) for p in rx_svc.dispensed_history()]})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsPharmacyRole])
def prescription_status(request, prescription_id: int):
    s = StatusUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    p = rx_svc.update_status(prescription_id, s.validated_data['status'], by=request.user)
    return Response({'ok': True, 'data': rx_svc.prescription_dict(p)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPharmacyRole])
def inventory(request):
    if request.method == 'GET':
        return Response({'ok': True, 'data': [supply_svc.medication_dict(m) for m in supply_svc.inventory()]})

    s = MedicationCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    med = supply_svc.add_medication(by=request.user, **s.validated_data)
    return Response({'ok': True, 'data': supply_svc.medication_dict(med)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPharmacyRole])
def supply_orders(request):
    if request.method == 'GET':
        qs = SupplyOrder.objects.select_related('medication').order_by('-requested_at')
        return Response({'ok': True, 'data': [supply_svc.supply_order_dict(o) for o in qs]})

    s = RestockSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    order = supply_svc.request_restock(s.validated_data['medicationId'], s.validated_data['quantity'], by=request.user)
    return Response({'ok': True, 'data': supply_svc.supply_order_dict(order)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPharmacyRole])
def receive_order(request, order_id: int):
    order = supply_svc.mark_received(order_id, by=request.user)
    return Response({'ok': True, 'data': supply_svc.supply_order_dict(order)})
