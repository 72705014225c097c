from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from tracker.permissions import IsEvaluator, IsHOD
from tracker.serializers.admin import (
    BatchCreateSerializer,
    BatchDeleteQuerySerializer,
    FacultyCreateSerializer,
    FacultyUpdateSerializer,
)
from tracker.services import batches, directory
from tracker.services.audit import client_ip, recent_events


@api_view(['GET', 'POST'])
@permission_classes([IsHOD])
def batch_collection(request):
    if request.method == 'GET':
        return Response({'success': True, 'data': batches.list_batches()})

    s = BatchCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    batch = batches.create_batch(
        name=vd['name'],
        start_date=vd['startDate'],
        end_date=vd.get('endDate'),
        interns=vd['interns'],
        created_by=request.user,
        ip=client_ip(request),
    )
    return Response({'success': True, 'data': batches.serialize_batch(batch)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsHOD])
def batch_archive(request, batch_id):
    batch = batches.archive_batch(batch_id, user=request.user, ip=client_ip(request))
    return Response({'success': True, 'data': batches.serialize_batch(batch)})


@api_view(['DELETE'])
@permission_classes([IsHOD])
def batch_delete(request, batch_id):
    q = BatchDeleteQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    result = batches.delete_batch(batch_id, user=request.user, purge=q.validated_data['purge'], ip=client_ip(request))
    return Response({'success': True, 'data': result})


@api_view(['GET', 'POST'])
@permission_classes([IsHOD])
def faculty_collection(request):
    if request.method == 'GET':
        return Response({'success': True, 'data': directory.list_faculty()})

    s = FacultyCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = directory.create_faculty(
        full_name=s.validated_data['fullName'],
        email=s.validated_data['email'],
        role=s.validated_data['role'],
        created_by=request.user,
        ip=client_ip(request),
    )
    return Response({'success': True, 'data': directory.serialize_user(user)}, status=status.HTTP_201_CREATED)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsHOD])
def faculty_detail(request, user_id):
    if request.method == 'DELETE':
        directory.delete_faculty(user_id, deleted_by=request.user, ip=client_ip(request))
        return Response({'success': True, 'data': {'id': user_id}})

    target = directory.get_staff(user_id)
    s = FacultyUpdateSerializer(data=request.data, context={'target': target})
    s.is_valid(raise_exception=True)
    user = directory.update_faculty(user_id, changes=dict(s.validated_data), updated_by=request.user,
                                    ip=client_ip(request))
    return Response({'success': True, 'data': directory.serialize_user(user)})


@api_view(['GET'])
@permission_classes([IsEvaluator])
def intern_list(request):
    return Response({'success': True, 'data': directory.list_interns()})


@api_view(['GET'])
@permission_classes([IsHOD])
def stats(request):
    return Response({'success': True, 'data': directory.dashboard_stats()})


@api_view(['GET'])
@permission_classes([IsHOD])
def audit_log(request):
    try:
        limit = min(int(request.query_params.get('limit', 100)), 500)
    except ValueError:
        limit = 100
    return Response({'success': True, 'data': recent_events(limit)})
