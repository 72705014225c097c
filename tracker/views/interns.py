from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from tracker.permissions import IsEvaluator
from tracker.services.directory import find_intern, serialize_user


@api_view(['GET'])
@permission_classes([IsEvaluator])
def validate_intern(request, identifier):
    """Resolve an intern by id or registration number before evaluating them."""
    return Response({'success': True, 'data': serialize_user(find_intern(identifier))})
