from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from tracker.permissions import IsHOD
from tracker.services.performance import intern_performance


@api_view(['GET'])
@permission_classes([IsHOD])
def student_performance(request, student_id):
    """All four modules for one intern, temporary attempts excluded."""
    return Response({'success': True, 'data': intern_performance(student_id)})
