from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from care.permissions import IsLabRole
from care.serializers.clinical import LabResultsSerializer, StatusUpdateSerializer
from care.services import lab as lab_svc


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsLabRole])
def worklist(request):
    return Response({'ok': True, 'data': [lab_svc.lab_order_dict(o) for o in lab_svc.worklist()]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsLabRole])
def results_queue(request):
    return Response({'ok': True, 'data': [lab_svc.lab_order_dict(o) for o in lab_svc.results_queue()]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsLabRole])
def completed(request):
    return Response({'ok': True, 'data': [lab_svc.lab_order_dict(o) for o in lab_svc.completed_orders()]})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsLabRole])
def order_status(request, order_id: int):
    s = StatusUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    order = lab_svc.update_status(order_id, s.validated_data['status'], by=request.user)
    return Response({'ok': True, 'data': lab_svc.lab_order_dict(order)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsLabRole])
def save_results(request, order_id: int):
    s = LabResultsSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    order = lab_svc.save_results(
        order_id,
        results=v['results'],
        result_notes=v.get('resultNotes', ''),
        abnormal_findings=v.get('abnormalFindings', ''),
        by=request.user,
    )
    return Response({'ok': True, 'data': lab_svc.lab_order_dict(order)})
