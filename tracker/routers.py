"""
URL mappings for the residency tracker API.

Paths carry no trailing slash, matching the single page frontend.  The
four evaluation modules share one set of views; each route passes the
module name as an extra keyword argument.
"""
from django.urls import include, path

from .views import admin, auth, evaluations, exports, health, interns, performance
from .models import EvaluationRecord


def _module_routes(prefix: str, module: str) -> list:
    kw = {'module': module}
    return [
        path(f'api/{prefix}/<int:intern_id>/attempts', evaluations.attempt_create, kw),
        path(f'api/{prefix}/<int:intern_id>/attempts/<int:number>', evaluations.attempt_edit, kw),
        path(f'api/{prefix}/<int:intern_id>/attempts/<int:number>/acknowledge',
             evaluations.attempt_acknowledge, kw),
        path(f'api/{prefix}/<int:intern_id>', evaluations.attempt_list, kw),
    ]


opd = {'module': EvaluationRecord.MODULE_OPD}

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Authentication
    path('api/auth/login', auth.login_view),
    path('api/auth/logout', auth.logout_view),
    path('api/auth/me', auth.me_view),
    # Administration
    path('api/admin/batches', admin.batch_collection),
    path('api/admin/batches/<int:batch_id>', admin.batch_delete),
    path('api/admin/batches/<int:batch_id>/archive', admin.batch_archive),
    path('api/admin/faculty', admin.faculty_collection),
    path('api/admin/faculty/<int:user_id>', admin.faculty_detail),
    path('api/admin/interns', admin.intern_list),
    path('api/admin/stats', admin.stats),
    path('api/admin/audit', admin.audit_log),
    # Reports
    path('api/admin/export/batch/<int:batch_id>', exports.batch_export),
    path('api/admin/export/intern/<int:intern_id>', exports.intern_export),
    path('api/performance/<int:student_id>', performance.student_performance),
    path('api/interns/validate/<str:identifier>', interns.validate_intern),
    # OPD, keyed by procedure family
    path('api/opd/<str:module_code>/<int:intern_id>/attempts', evaluations.attempt_create, opd),
    path('api/opd/<str:module_code>/<int:intern_id>/attempts/<int:number>/acknowledge',
         evaluations.attempt_acknowledge, opd),
    path('api/opd/<str:module_code>/<int:intern_id>/competency', evaluations.opd_competency),
    path('api/opd/<str:module_code>/<int:intern_id>', evaluations.attempt_list, opd),
]

urlpatterns += _module_routes('surgery', EvaluationRecord.MODULE_SURGERY)
urlpatterns += _module_routes('wetlab', EvaluationRecord.MODULE_WETLAB)
urlpatterns += _module_routes('academic', EvaluationRecord.MODULE_ACADEMIC)
