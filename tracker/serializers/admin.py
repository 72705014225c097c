import bleach
from django.conf import settings
from django.db.models import Q
from django.utils import timezone
from rest_framework import serializers

from tracker.models import User


def _clean(v):
    return bleach.clean((v or '').strip(), strip=True)


class BatchInternSerializer(serializers.Serializer):
    fullName = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    regNo = serializers.CharField(required=False, allow_blank=True, max_length=64, default='')

    def validate_fullName(self, v):
        v = _clean(v)
        if len(v) < 2:
            raise serializers.ValidationError('Full name must be at least 2 characters')
        return v

    def validate_email(self, v):
        return v.strip().lower()

    def validate_regNo(self, v):
        return _clean(v)


class BatchCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    startDate = serializers.DateField()
    endDate = serializers.DateField(required=False, allow_null=True)
    interns = BatchInternSerializer(many=True)

    def validate_name(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Batch name is required')
        return v

    def validate_startDate(self, v):
        if v < timezone.localdate():
            raise serializers.ValidationError('Start date cannot be in the past')
        return v

    def validate_interns(self, v):
        if len(v) != settings.BATCH_SIZE:
            raise serializers.ValidationError(f'A batch must have exactly {settings.BATCH_SIZE} interns')
        emails = [i['email'] for i in v]
        dupes = sorted({e for e in emails if emails.count(e) > 1})
        if dupes:
            raise serializers.ValidationError(f"Duplicate email(s) in request: {', '.join(dupes)}")
        registered = Q()
        for email in emails:
            registered |= Q(email__iexact=email)
        taken = sorted({e.lower() for e in User.objects.filter(registered).values_list('email', flat=True)})
        if taken:
            raise serializers.ValidationError(f"Email(s) already registered: {', '.join(taken)}")
        return v

    def validate(self, attrs):
        end = attrs.get('endDate')
        if end and end < attrs['startDate']:
            raise serializers.ValidationError({'endDate': 'End date must be after the start date'})
        return attrs


class BatchDeleteQuerySerializer(serializers.Serializer):
    purge = serializers.BooleanField(required=False, default=False)


class FacultyCreateSerializer(serializers.Serializer):
    fullName = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    role = serializers.ChoiceField(choices=[User.ROLE_FACULTY, User.ROLE_HOD], default=User.ROLE_FACULTY)

    def validate_fullName(self, v):
        v = _clean(v)
        if len(v) < 2:
            raise serializers.ValidationError('Full name must be at least 2 characters')
        return v

    def validate_email(self, v):
        v = v.strip().lower()
        if User.objects.filter(email=v).exists():
            raise serializers.ValidationError('A user with this email already exists')
        return v


class FacultyUpdateSerializer(serializers.Serializer):
    fullName = serializers.CharField(required=False, max_length=255)
    email = serializers.EmailField(required=False)
    role = serializers.ChoiceField(choices=[User.ROLE_FACULTY, User.ROLE_HOD], required=False)
    isActive = serializers.BooleanField(required=False)

    def validate_fullName(self, v):
        v = _clean(v)
        if len(v) < 2:
            raise serializers.ValidationError('Full name must be at least 2 characters')
        return v

    def validate_email(self, v):
        v = v.strip().lower()
        target = self.context.get('target')
        qs = User.objects.filter(email=v)
        if target is not None:
            qs = qs.exclude(pk=target.pk)
        if qs.exists():
            raise serializers.ValidationError('A user with this email already exists')
        return v
