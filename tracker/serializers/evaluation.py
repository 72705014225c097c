from collections.abc import Mapping

import bleach
from rest_framework import serializers

from tracker.services.modules import ACADEMIC, MAX_ITEM_SCORE, OPD, SURGERY, WETLAB

OPD_GRADES = ['Excellent', 'Good', 'Average', 'Below Average', 'Poor']
ACADEMIC_TYPES = ['SEMINAR', 'CASE_PRESENTATION', 'JOURNAL_CLUB']


def clean_text(v):
    return bleach.clean((v or '').strip(), strip=True)


class ItemScoresSerializer(serializers.Serializer):
    """Mapping of item key to score; keys outside the module are rejected."""

    def to_internal_value(self, data):
        if isinstance(data, Mapping):
            unknown = sorted(set(data) - set(self.fields))
            if unknown:
                raise serializers.ValidationError(f"Unknown item(s): {', '.join(unknown)}")
        return super().to_internal_value(data)


class ScoreAnswerSerializer(serializers.Serializer):
    itemKey = serializers.CharField(max_length=64)
    scoreValue = serializers.IntegerField(min_value=0, max_value=MAX_ITEM_SCORE)
    remark = serializers.CharField(required=False, allow_blank=True, max_length=1000, default='')

    def validate_remark(self, v):
        return clean_text(v)


class YesNoAnswerSerializer(serializers.Serializer):
    itemKey = serializers.CharField(max_length=64)
    ynValue = serializers.ChoiceField(choices=['Y', 'N'])
    remark = serializers.CharField(required=False, allow_blank=True, max_length=1000, default='')

    def validate_remark(self, v):
        return clean_text(v)


class AttemptBaseSerializer(serializers.Serializer):
    attemptDate = serializers.DateTimeField(required=False)
    remarks = serializers.CharField(required=False, allow_blank=True, max_length=4000)

    # replaced as a whole on edit, so checked in full even when partial
    whole_fields = ('answers', 'scores')

    def validate_remarks(self, v):
        return clean_text(v)

    def to_internal_value(self, data):
        attrs = super().to_internal_value(data)
        if not self.partial or not isinstance(data, Mapping):
            return attrs
        full = type(self)().fields
        for name in self.whole_fields:
            if name in data and name in full:
                try:
                    attrs[name] = full[name].run_validation(data[name])
                except serializers.ValidationError as exc:
                    raise serializers.ValidationError({name: exc.detail})
        return attrs


class SurgeryAttemptSerializer(AttemptBaseSerializer):
    answers = ScoreAnswerSerializer(many=True, allow_empty=False)
    patientName = serializers.CharField(max_length=255)
    surgeryName = serializers.CharField(max_length=255)
    gradeOfCataract = serializers.CharField(required=False, allow_blank=True, max_length=64)
    draping = serializers.CharField(required=False, allow_blank=True, max_length=64)

    def validate_patientName(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Patient name is required')
        return v

    def validate_surgeryName(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Surgery name is required')
        return v


class OpdAttemptSerializer(AttemptBaseSerializer):
    answers = YesNoAnswerSerializer(many=True, allow_empty=False)
    procedureName = serializers.CharField(required=False, allow_blank=True, max_length=255)
    grade = serializers.ChoiceField(choices=OPD_GRADES, required=False)

    def validate_procedureName(self, v):
        return clean_text(v)


class WetlabScoresSerializer(ItemScoresSerializer):
    procedureSteps = serializers.IntegerField(min_value=0, max_value=MAX_ITEM_SCORE)
    tissueHandling = serializers.IntegerField(min_value=0, max_value=MAX_ITEM_SCORE)
    timeManagement = serializers.IntegerField(min_value=0, max_value=MAX_ITEM_SCORE)
    outcome = serializers.IntegerField(min_value=0, max_value=MAX_ITEM_SCORE)


class AcademicScoresSerializer(ItemScoresSerializer):
    presentationQuality = serializers.IntegerField(min_value=0, max_value=MAX_ITEM_SCORE)
    content = serializers.IntegerField(min_value=0, max_value=MAX_ITEM_SCORE)
    qaHandling = serializers.IntegerField(min_value=0, max_value=MAX_ITEM_SCORE)
    slidesQuality = serializers.IntegerField(min_value=0, max_value=MAX_ITEM_SCORE)
    timing = serializers.IntegerField(min_value=0, max_value=MAX_ITEM_SCORE)


def _scores_to_answers(attrs):
    scores = attrs.pop('scores', None)
    if scores is not None:
        attrs['answers'] = [{'itemKey': k, 'scoreValue': v, 'remark': ''} for k, v in scores.items()]
    return attrs


class WetlabAttemptSerializer(AttemptBaseSerializer):
    exerciseName = serializers.CharField(max_length=255)
    scores = WetlabScoresSerializer()

    def validate_exerciseName(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Exercise name is required')
        return v

    def validate(self, attrs):
        return _scores_to_answers(attrs)


class AcademicAttemptSerializer(AttemptBaseSerializer):
    evaluationType = serializers.ChoiceField(choices=ACADEMIC_TYPES)
    topic = serializers.CharField(required=False, allow_blank=True, max_length=255)
    scores = AcademicScoresSerializer()

    def validate_topic(self, v):
        return clean_text(v)

    def validate(self, attrs):
        return _scores_to_answers(attrs)


ATTEMPT_SERIALIZERS = {
    SURGERY.module: SurgeryAttemptSerializer,
    OPD.module: OpdAttemptSerializer,
    WETLAB.module: WetlabAttemptSerializer,
    ACADEMIC.module: AcademicAttemptSerializer,
}
