"""
Database models for the residency assessment tracker.

Users carry one of three roles (HOD, faculty, intern).  Interns are
grouped into batches of four.  Every evaluation an intern receives is an
:class:`Attempt` appended to the :class:`EvaluationRecord` container for
that (intern, module, module code) triple; the container also owns the
sequence counter used to number its attempts.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Programme member with a role and an optional batch.

    ``username`` mirrors ``email`` so that Django's authentication
    backends keep working unchanged; callers should treat ``email`` as
    the identity.
    """
    ROLE_HOD = 'HOD'
    ROLE_FACULTY = 'FACULTY'
    ROLE_INTERN = 'INTERN'
    ROLE_CHOICES = [
        (ROLE_HOD, 'Head of Department'),
        (ROLE_FACULTY, 'Faculty'),
        (ROLE_INTERN, 'Intern'),
    ]
    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=255, blank=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_INTERN, db_index=True)
    # Registration number, interns only
    reg_no = models.CharField(max_length=64, blank=True, null=True, db_index=True)
    batch = models.ForeignKey(
        'Batch', null=True, blank=True, on_delete=models.SET_NULL, related_name='members'
    )

    @property
    def display_name(self) -> str:
        return self.full_name or self.get_full_name() or self.email

    def __str__(self) -> str:
        return f"{self.email} ({self.role})"


class Batch(models.Model):
    """A cohort of interns that starts together."""
    STATUS_ACTIVE = 'ACTIVE'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_ARCHIVED = 'ARCHIVED'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_ARCHIVED, 'Archived'),
    ]
    name = models.CharField(max_length=255)
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self) -> str:
        return f"{self.name} ({self.status})"


class BatchIntern(models.Model):
    """Snapshot of an intern taken when the batch was created.

    The user reference survives edits to the user; the name, email and
    registration number stay as they were at creation time.
    """
    batch = models.ForeignKey(Batch, on_delete=models.CASCADE, related_name='interns')
    user = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='batch_snapshots'
    )
    full_name = models.CharField(max_length=255)
    email = models.EmailField()
    reg_no = models.CharField(max_length=64, blank=True)
    position = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ['position', 'id']

    def __str__(self) -> str:
        return f"{self.full_name} in {self.batch_id}"


class EvaluationRecord(models.Model):
    """Container of all attempts for one intern in one module."""
    MODULE_SURGERY = 'SURGERY'
    MODULE_OPD = 'OPD'
    MODULE_WETLAB = 'WETLAB'
    MODULE_ACADEMIC = 'ACADEMIC'
    MODULE_CHOICES = [
        (MODULE_SURGERY, 'Surgery'),
        (MODULE_OPD, 'OPD'),
        (MODULE_WETLAB, 'Wet lab'),
        (MODULE_ACADEMIC, 'Academic'),
    ]
    intern = models.ForeignKey(User, on_delete=models.CASCADE, related_name='evaluation_records')
    module = models.CharField(max_length=16, choices=MODULE_CHOICES)
    # e.g. 'SURGERY' or an OPD procedure family such as 'GENERAL_SURGERY_OPD'
    module_code = models.CharField(max_length=64)
    attempt_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['intern', 'module', 'module_code'], name='uniq_record_intern_module'),
        ]
        indexes = [
            models.Index(fields=['module', 'module_code']),
        ]

    def __str__(self) -> str:
        return f"{self.module}/{self.module_code} for {self.intern_id}"


class Attempt(models.Model):
    """One dated evaluation inside a container."""
    STATUS_TEMPORARY = 'TEMPORARY'
    STATUS_PENDING_ACK = 'PENDING_ACK'
    STATUS_ACKNOWLEDGED = 'ACKNOWLEDGED'
    STATUS_CHOICES = [
        (STATUS_TEMPORARY, 'Temporary'),
        (STATUS_PENDING_ACK, 'Pending acknowledgement'),
        (STATUS_ACKNOWLEDGED, 'Acknowledged'),
    ]

    RESULT_PASS = 'PASS'
    RESULT_FAIL = 'FAIL'
    RESULT_CHOICES = [(RESULT_PASS, 'Pass'), (RESULT_FAIL, 'Fail')]

    record = models.ForeignKey(EvaluationRecord, on_delete=models.CASCADE, related_name='attempts')
    number = models.PositiveIntegerField()
    attempt_date = models.DateTimeField()
    faculty = models.ForeignKey(
        User, null=True, on_delete=models.SET_NULL, related_name='evaluations_given'
    )
    # [{"itemKey": ..., "scoreValue"|"ynValue": ..., "remark": ...}]
    answers = models.JSONField(default=list)
    # Module header fields (patientName, procedureName, exerciseName, topic, ...)
    details = models.JSONField(default=dict, blank=True)
    total_score = models.PositiveIntegerField(null=True, blank=True)
    max_score = models.PositiveIntegerField(null=True, blank=True)
    grade = models.CharField(max_length=20, blank=True)
    result = models.CharField(max_length=4, choices=RESULT_CHOICES, blank=True)
    remarks = models.TextField(blank=True)
    status = models.CharField(
        max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING_ACK, db_index=True
    )
    acknowledged_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='acknowledgements'
    )
    acknowledged_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['number']
        constraints = [
            models.UniqueConstraint(fields=['record', 'number'], name='uniq_attempt_number'),
        ]

    def __str__(self) -> str:
        return f"#{self.number} of record {self.record_id} ({self.status})"


class OpdCompetency(models.Model):
    """Consecutive acknowledged OPD passes for one intern and module code."""
    intern = models.ForeignKey(User, on_delete=models.CASCADE, related_name='opd_competencies')
    module_code = models.CharField(max_length=64)
    consecutive_success_count = models.PositiveIntegerField(default=0)
    competent = models.BooleanField(default=False)
    achieved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['intern', 'module_code'], name='uniq_competency_intern_code'),
        ]

    def __str__(self) -> str:
        return f"{self.module_code}:{self.intern_id} streak={self.consecutive_success_count}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    ip = models.GenericIPAddressField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['object_type', 'object_id', 'created_at']),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"


class ExportRecord(models.Model):
    """One generated report, successful or not."""
    TYPE_PDF = 'PDF'
    TYPE_EXCEL = 'EXCEL'
    TYPE_CHOICES = ((TYPE_PDF, 'PDF'), (TYPE_EXCEL, 'Excel'))

    STATUS_PENDING = 'PENDING'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_FAILED = 'FAILED'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_FAILED, 'Failed'),
    )

    export_type = models.CharField(max_length=8, choices=TYPE_CHOICES)
    batch = models.ForeignKey(Batch, null=True, blank=True, on_delete=models.SET_NULL, related_name='exports')
    intern = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='exports')
    generated_by = models.ForeignKey(
        User, null=True, on_delete=models.SET_NULL, related_name='exports_generated'
    )
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_PENDING)
    filename = models.CharField(max_length=255, blank=True)
    meta = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"export {self.export_type} {self.status} @ {self.created_at:%F %T}"
