"""
Evaluation endpoints.

The same views serve surgery, OPD, wet lab and academic routes; the URL
configuration passes the module name as an extra keyword argument and,
for OPD, the module code is captured from the path.
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from tracker.permissions import IsEvaluator, IsIntern
from tracker.serializers.evaluation import ATTEMPT_SERIALIZERS
from tracker.services.audit import client_ip
from tracker.services.evaluations import (
    acknowledge_attempt,
    edit_attempt,
    get_competency,
    list_attempts,
    serialize_attempt,
    serialize_competency,
    submit_attempt,
)
from tracker.services.modules import KIND_YESNO, get_module


@api_view(['POST'])
@permission_classes([IsEvaluator])
def attempt_create(request, module, intern_id, module_code=None):
    mod = get_module(module)
    s = ATTEMPT_SERIALIZERS[mod.module](data=request.data)
    s.is_valid(raise_exception=True)
    attempt, competency = submit_attempt(
        mod,
        intern_id=intern_id,
        faculty=request.user,
        data=s.validated_data,
        module_code=module_code,
        ip=client_ip(request),
    )
    data = serialize_attempt(attempt)
    if mod.kind == KIND_YESNO:
        comp = serialize_competency(competency, attempt.record.module_code)
        data['currentStreak'] = comp['consecutiveSuccessCount']
        data['competent'] = comp['competent']
    return Response({'success': True, 'data': data}, status=status.HTTP_201_CREATED)


@api_view(['PUT'])
@permission_classes([IsEvaluator])
def attempt_edit(request, module, intern_id, number):
    mod = get_module(module)
    s = ATTEMPT_SERIALIZERS[mod.module](data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    attempt = edit_attempt(
        mod,
        intern_id=intern_id,
        number=number,
        editor=request.user,
        data=s.validated_data,
        ip=client_ip(request),
    )
    return Response({'success': True, 'data': serialize_attempt(attempt)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def attempt_list(request, module, intern_id, module_code=None):
    data = list_attempts(get_module(module), intern_id=intern_id, viewer=request.user, module_code=module_code)
    return Response({'success': True, 'data': data})


@api_view(['POST'])
@permission_classes([IsIntern])
def attempt_acknowledge(request, module, intern_id, number, module_code=None):
    mod = get_module(module)
    attempt, competency = acknowledge_attempt(
        mod,
        user=request.user,
        intern_id=intern_id,
        number=number,
        module_code=module_code,
        ip=client_ip(request),
    )
    data = serialize_attempt(attempt)
    if competency is not None:
        data['competency'] = serialize_competency(competency, competency.module_code)
    return Response({'success': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def opd_competency(request, intern_id, module_code):
    data = get_competency(intern_id=intern_id, viewer=request.user, module_code=module_code)
    return Response({'success': True, 'data': data})
