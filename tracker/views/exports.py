from django.http import HttpResponse
from rest_framework.decorators import api_view, permission_classes

from tracker.permissions import IsHOD
from tracker.services.audit import client_ip
from tracker.services.export import PDF_CONTENT_TYPE, XLSX_CONTENT_TYPE, export_batch, export_intern


def _attachment(content: bytes, filename: str, content_type: str) -> HttpResponse:
    resp = HttpResponse(content, content_type=content_type)
    resp['Content-Disposition'] = f'attachment; filename="{filename}"'
    return resp


@api_view(['GET'])
@permission_classes([IsHOD])
def batch_export(request, batch_id):
    content, filename = export_batch(batch_id, user=request.user, ip=client_ip(request))
    return _attachment(content, filename, XLSX_CONTENT_TYPE)


@api_view(['GET'])
@permission_classes([IsHOD])
def intern_export(request, intern_id):
    content, filename = export_intern(intern_id, user=request.user, ip=client_ip(request))
    return _attachment(content, filename, PDF_CONTENT_TYPE)
