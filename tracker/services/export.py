"""
Report generation.

Batch reports are Excel workbooks built with openpyxl, intern reports are
PDF documents built with reportlab.  Every request leaves an
:class:`ExportRecord` behind, marked COMPLETED or FAILED.
"""
import io
import logging
from typing import Callable, Optional
from xml.sax.saxutils import escape

from django.contrib.auth import get_user_model
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from rest_framework.exceptions import NotFound

from tracker.models import Batch, ExportRecord, OpdCompetency
from tracker.services.audit import log_action
from tracker.services.evaluations import get_intern_or_404
from tracker.services.modules import MODULES
from tracker.services.performance import collect_attempts, module_summary

logger = logging.getLogger(__name__)
User = get_user_model()

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
PDF_CONTENT_TYPE = 'application/pdf'

ATTEMPT_COLUMNS = ['Module', 'Code', '#', 'Date', 'Faculty', 'Score', 'Max', 'Grade', 'Result', 'Status', 'Remarks']
HEADER_FONT = Font(bold=True, color='FFFFFF')
HEADER_FILL = PatternFill('solid', fgColor='1F4E78')


def _attempt_row(a) -> list:
    return [
        a.record.module,
        a.record.module_code,
        a.number,
        a.attempt_date.strftime('%Y-%m-%d') if a.attempt_date else '',
        a.faculty.display_name if a.faculty else '',
        a.total_score if a.total_score is not None else '',
        a.max_score if a.max_score is not None else '',
        a.grade,
        a.result,
        a.status,
        a.remarks,
    ]


def _run_export(export_type: str, *, user, build: Callable[[], tuple[bytes, str]],
                batch: Optional[Batch] = None, intern=None, ip: Optional[str] = None) -> tuple[bytes, str]:
    record = ExportRecord.objects.create(export_type=export_type, batch=batch, intern=intern, generated_by=user)
    try:
        content, filename = build()
    except Exception:
        logger.exception('%s export %s failed', export_type, record.pk)
        record.status = ExportRecord.STATUS_FAILED
        record.save(update_fields=['status'])
        raise
    record.status = ExportRecord.STATUS_COMPLETED
    record.filename = filename
    record.meta = {'bytes': len(content)}
    record.save(update_fields=['status', 'filename', 'meta'])
    log_action(user=user, action='export', object_type='ExportRecord', object_id=record.pk,
               detail={'type': export_type, 'filename': filename}, ip=ip)
    logger.info('%s export %s generated (%s bytes)', export_type, filename, len(content))
    return content, filename


def _style_header(ws, ncols: int) -> None:
    for col in range(1, ncols + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        ws.column_dimensions[get_column_letter(col)].width = 18
    ws.freeze_panes = 'A2'


def build_batch_workbook(batch: Batch, interns: list) -> bytes:
    wb = Workbook()
    summary = wb.active
    summary.title = 'Summary'
    header = ['Intern', 'Email', 'Reg No']
    for mod in MODULES.values():
        header += [f'{mod.title} attempts', f'{mod.title} latest grade']
    header.append('OPD competent codes')
    summary.append(header)
    _style_header(summary, len(header))

    details = wb.create_sheet('Attempts')
    details.append(['Intern'] + ATTEMPT_COLUMNS)
    _style_header(details, len(ATTEMPT_COLUMNS) + 1)

    for intern in interns:
        grouped = collect_attempts(intern)
        row = [intern.full_name, intern.email, intern.reg_no or '']
        for name in MODULES:
            s = module_summary(grouped.get(name, []))
            row += [s['attempts'], s['latestGrade'] or '']
        competent = OpdCompetency.objects.filter(intern=intern, competent=True).order_by('module_code')
        row.append(', '.join(c.module_code for c in competent))
        summary.append(row)
        for name in MODULES:
            for a in grouped.get(name, []):
                details.append([intern.full_name] + _attempt_row(a))

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def export_batch(batch_id, *, user, ip: Optional[str] = None) -> tuple[bytes, str]:
    try:
        batch = Batch.objects.get(pk=batch_id)
    except Batch.DoesNotExist:
        raise NotFound('Batch not found')
    interns = list(User.objects.filter(batch=batch, role=User.ROLE_INTERN).order_by('full_name', 'id'))
    if not interns:
        raise NotFound('No interns found in this batch')

    def build():
        filename = f"batch_{batch.pk}_{timezone.localdate():%Y%m%d}.xlsx"
        return build_batch_workbook(batch, interns), filename

    return _run_export(ExportRecord.TYPE_EXCEL, user=user, build=build, batch=batch, ip=ip)


def build_intern_pdf(intern) -> bytes:
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf, pagesize=landscape(A4),
        leftMargin=1.5 * cm, rightMargin=1.5 * cm, topMargin=1.5 * cm, bottomMargin=1.5 * cm,
        title=f'Performance report: {intern.full_name}',
    )
    styles = getSampleStyleSheet()
    story = [
        Paragraph('PG Residency Performance Report', styles['Title']),
        Paragraph(f'<b>Intern:</b> {escape(intern.full_name)} ({escape(intern.email)})', styles['Normal']),
        Paragraph(f'<b>Reg No:</b> {escape(intern.reg_no or "-")}', styles['Normal']),
        Paragraph(f'<b>Batch:</b> {escape(intern.batch.name) if intern.batch_id else "-"}', styles['Normal']),
        Paragraph(f'<b>Generated:</b> {timezone.localtime():%Y-%m-%d %H:%M}', styles['Normal']),
        Spacer(1, 0.5 * cm),
    ]
    grouped = collect_attempts(intern)
    for name, mod in MODULES.items():
        attempts = grouped.get(name, [])
        story.append(Paragraph(mod.title, styles['Heading2']))
        if not attempts:
            story.append(Paragraph('No evaluations recorded.', styles['Italic']))
            story.append(Spacer(1, 0.3 * cm))
            continue
        rows = [ATTEMPT_COLUMNS] + [[str(v) for v in _attempt_row(a)] for a in attempts]
        table = Table(rows, repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#1F4E78')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('GRID', (0, 0), (-1, -1), 0.25, colors.grey),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))
        story.append(table)
        story.append(Spacer(1, 0.4 * cm))

    competencies = OpdCompetency.objects.filter(intern=intern).order_by('module_code')
    if competencies:
        story.append(Paragraph('OPD competency', styles['Heading2']))
        rows = [['Code', 'Streak', 'Competent', 'Achieved']] + [[
            c.module_code,
            str(c.consecutive_success_count),
            'Yes' if c.competent else 'No',
            f'{c.achieved_at:%Y-%m-%d}' if c.achieved_at else '',
        ] for c in competencies]
        table = Table(rows)
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 0.25, colors.grey),
        ]))
        story.append(table)

    doc.build(story)
    return buf.getvalue()


def export_intern(intern_id, *, user, ip: Optional[str] = None) -> tuple[bytes, str]:
    intern = get_intern_or_404(intern_id)

    def build():
        filename = f"intern_{intern.pk}_{timezone.localdate():%Y%m%d}.pdf"
        return build_intern_pdf(intern), filename

    return _run_export(ExportRecord.TYPE_PDF, user=user, build=build, intern=intern, ip=ip)
