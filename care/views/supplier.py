from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.permissions import IsSupplierRole
from care.serializers.supply import MedicationCreateSerializer, SupplyOrderStatusSerializer
from care.services import supply as supply_svc


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsSupplierRole])
def medications(request):
    supplier = supply_svc.supplier_for(request.user)
    if request.method == 'GET':
        data = [supply_svc.medication_dict(m) for m in supply_svc.supplier_medications(supplier)]
        return Response({'ok': True, 'data': data})

    s = MedicationCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    med = supply_svc.add_medication(supplier=supplier, by=request.user, **s.validated_data)
    return Response({'ok': True, 'data': supply_svc.medication_dict(med)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsSupplierRole])
def orders(request):
    supplier = supply_svc.supplier_for(request.user)
    if request.method == 'GET':
        data = [supply_svc.supply_order_dict(o) for o in supply_svc.supplier_orders(supplier)]
        return Response({'ok': True, 'data': data})

    s = SupplyOrderStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    order = supply_svc.set_order_status(supplier, s.validated_data['orderId'], s.validated_data['status'])
    return Response({'ok': True, 'data': supply_svc.supply_order_dict(order)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsSupplierRole])
def analytics(request):
    supplier = supply_svc.supplier_for(request.user)
    return Response(dict(ok=True, **supply_svc.supplier_analytics(supplier)))
