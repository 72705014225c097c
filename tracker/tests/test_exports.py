import datetime
import io

import pytest
from openpyxl import load_workbook

from tracker.models import Batch, ExportRecord
from tracker.services.export import XLSX_CONTENT_TYPE
from tracker.tests.factories import client_for, opd_payload, surgery_payload, wetlab_payload

pytestmark = pytest.mark.django_db


@pytest.fixture
def evaluated_intern(faculty, intern):
    client = client_for(faculty)
    client.post(f'/api/surgery/{intern.id}/attempts', surgery_payload(score=5), format='json')
    client.post(f'/api/wetlab/{intern.id}/attempts', wetlab_payload(score=2), format='json')
    client.post(f'/api/opd/REFRACTION/{intern.id}/attempts', opd_payload(), format='json')
    client.post(f'/api/opd/REFRACTION/{intern.id}/attempts', opd_payload(no=('history',)), format='json')
    return intern


def test_performance_covers_all_modules(hod_client, evaluated_intern):
    r = hod_client.get(f'/api/performance/{evaluated_intern.id}')
    assert r.status_code == 200
    modules = r.data['data']['modules']
    assert set(modules) == {'surgery', 'opd', 'wetlab', 'academic'}
    assert modules['surgery']['summary']['latestGrade'] == 'Excellent'
    assert modules['surgery']['summary']['averagePercentage'] == 100.0
    assert modules['wetlab']['summary']['latestGrade'] == 'Poor'
    # the failed OPD attempt is temporary and left out
    assert modules['opd']['summary']['attempts'] == 1
    assert modules['opd']['moduleCodes'] == ['REFRACTION']
    assert modules['academic']['attempts'] == []
    assert r.data['data']['opdCompetency'][0]['moduleCode'] == 'REFRACTION'


def test_performance_is_hod_only(faculty_client, intern):
    assert faculty_client.get(f'/api/performance/{intern.id}').status_code == 403


def test_performance_unknown_intern(hod_client):
    assert hod_client.get('/api/performance/5151').status_code == 404


def test_batch_export_workbook(hod_client, batch, evaluated_intern):
    r = hod_client.get(f'/api/admin/export/batch/{batch.id}')
    assert r.status_code == 200
    assert r['Content-Type'] == XLSX_CONTENT_TYPE
    assert 'attachment' in r['Content-Disposition']

    wb = load_workbook(io.BytesIO(r.content))
    assert wb.sheetnames == ['Summary', 'Attempts']
    summary = list(wb['Summary'].iter_rows(values_only=True))
    assert summary[0][0] == 'Intern'
    assert summary[1][1] == evaluated_intern.email
    attempts = list(wb['Attempts'].iter_rows(values_only=True))
    assert len(attempts) == 1 + 3

    record = ExportRecord.objects.get()
    assert record.export_type == ExportRecord.TYPE_EXCEL
    assert record.status == ExportRecord.STATUS_COMPLETED
    assert record.batch_id == batch.id


def test_batch_export_without_interns_is_404(hod_client):
    empty = Batch.objects.create(name='Empty', start_date=datetime.date(2027, 1, 1))
    r = hod_client.get(f'/api/admin/export/batch/{empty.id}')
    assert r.status_code == 404
    assert not ExportRecord.objects.exists()


def test_intern_pdf_export(hod_client, evaluated_intern):
    r = hod_client.get(f'/api/admin/export/intern/{evaluated_intern.id}')
    assert r.status_code == 200
    assert r['Content-Type'] == 'application/pdf'
    assert r.content.startswith(b'%PDF')
    record = ExportRecord.objects.get()
    assert record.export_type == ExportRecord.TYPE_PDF
    assert record.status == ExportRecord.STATUS_COMPLETED
    assert record.filename.endswith('.pdf')


def test_failed_export_is_recorded(hod_client, intern, monkeypatch):
    from tracker.services import export

    def boom(_intern):
        raise RuntimeError('renderer crashed')

    monkeypatch.setattr(export, 'build_intern_pdf', boom)
    r = hod_client.get(f'/api/admin/export/intern/{intern.id}')
    assert r.status_code == 500
    assert r.data == {'success': False, 'error': 'Server Error'}
    assert ExportRecord.objects.get().status == ExportRecord.STATUS_FAILED


def test_exports_are_hod_only(faculty_client, batch):
    assert faculty_client.get(f'/api/admin/export/batch/{batch.id}').status_code == 403
