"""
Evaluation module definitions.

Surgery, OPD, wet lab and academic evaluations share one container
shape and one lifecycle.  What differs between them is captured here:
the item schema (0-5 scores or yes/no answers), the header fields an
attempt carries, whether low scores need a remark, and how the total is
turned into a grade and an initial status.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from rest_framework.exceptions import ValidationError

from tracker.models import Attempt, EvaluationRecord

KIND_SCORE = 'score'
KIND_YESNO = 'yesno'

MAX_ITEM_SCORE = 5
MODULE_CODE_RE = re.compile(r'^[A-Z0-9_]{2,64}$')


@dataclass(frozen=True)
class ModuleItem:
    key: str
    label: str


@dataclass(frozen=True)
class Outcome:
    """Derived fields of an attempt."""
    total_score: Optional[int]
    max_score: Optional[int]
    grade: str
    result: str
    status: str


@dataclass(frozen=True)
class EvaluationModule:
    module: str
    title: str
    kind: str
    items: tuple[ModuleItem, ...]
    header_fields: tuple[str, ...] = ()
    # scores strictly below this need a remark; None disables the rule
    remark_below: Optional[int] = None
    # (minimum percentage, grade), highest first
    grade_bands: tuple[tuple[float, str], ...] = ()
    lowest_grade: str = ''
    # modules with a single container per intern; OPD takes the code from the URL
    fixed_code: Optional[str] = None
    # header field that must not repeat within one container
    unique_detail: Optional[str] = None

    @property
    def item_keys(self) -> list[str]:
        return [i.key for i in self.items]

    @property
    def max_score(self) -> Optional[int]:
        if self.kind != KIND_SCORE:
            return None
        return len(self.items) * MAX_ITEM_SCORE

    def resolve_code(self, module_code: Optional[str]) -> str:
        if self.fixed_code:
            return self.fixed_code
        code = (module_code or '').strip().upper()
        if not MODULE_CODE_RE.match(code):
            raise ValidationError({'moduleCode': 'Invalid module code'})
        return code

    def grade_for(self, total: int) -> str:
        percentage = total / self.max_score * 100
        for threshold, grade in self.grade_bands:
            if percentage >= threshold:
                return grade
        return self.lowest_grade

    def check_answers(self, answers: list[dict]) -> None:
        """Every item answered once, nothing unknown, remarks where required."""
        seen = set()
        known = set(self.item_keys)
        for ans in answers:
            key = ans['itemKey']
            if key not in known:
                raise ValidationError({'answers': f"Unknown item '{key}' for {self.title}"})
            if key in seen:
                raise ValidationError({'answers': f"Item '{key}' answered more than once"})
            seen.add(key)
        missing = [k for k in self.item_keys if k not in seen]
        if missing:
            raise ValidationError({'answers': f"Missing answers for: {', '.join(missing)}"})

        if self.remark_below is None:
            return
        for ans in answers:
            if ans['scoreValue'] < self.remark_below and not (ans.get('remark') or '').strip():
                raise ValidationError({
                    'answers': f"Remark is required for item '{ans['itemKey']}' because score is less than {self.remark_below}"
                })

    def evaluate(self, answers: list[dict]) -> Outcome:
        self.check_answers(answers)
        if self.kind == KIND_YESNO:
            passed = all(a['ynValue'] == 'Y' for a in answers)
            return Outcome(
                total_score=None,
                max_score=None,
                grade='',
                result=Attempt.RESULT_PASS if passed else Attempt.RESULT_FAIL,
                status=Attempt.STATUS_PENDING_ACK if passed else Attempt.STATUS_TEMPORARY,
            )
        total = sum(a['scoreValue'] for a in answers)
        return Outcome(
            total_score=total,
            max_score=self.max_score,
            grade=self.grade_for(total),
            result='',
            status=Attempt.STATUS_PENDING_ACK,
        )


SURGERY_ITEMS = (
    ModuleItem('scleral_access', 'Scleral access & Cauterization'),
    ModuleItem('sclerocorneal_tunnel', 'Sclerocorneal Tunnel'),
    ModuleItem('corneal_entry', 'Corneal entry'),
    ModuleItem('paracentesis', 'Paracentesis & Viscoelastic insertion'),
    ModuleItem('capsulorrhexis', 'Capsulorrhexis: Commencement of Flap & follow-through'),
    ModuleItem('capsulorrhexis_completion', 'Capsulorrhexis: Formation and Circular Completion'),
    ModuleItem('hydrodissection', 'Hydrodissection: Visible Fluid Wave and Free prolapse of one pole of nucleus'),
    ModuleItem('prolapse_nucleus', 'Prolapse of nucleus completely into AC'),
    ModuleItem('nucleus_extraction', 'Nucleus extraction'),
    ModuleItem('irrigation_aspiration', 'Irrigation and Aspiration Technique With Adequate Removal of Cortex'),
    ModuleItem('lens_insertion', 'Lens Insertion, Rotation, and Final Position of Intraocular Lens'),
    ModuleItem('wound_closure', 'Wound Closure (Including Suturing, Hydration, and Checking Security as Required)'),
    ModuleItem('global_indices', 'Global Indices Wound Neutrality and Minimizing Eye Rolling and Corneal Distortion'),
    ModuleItem('eye_position', 'Eye Positioned Centrally Within Microscope View'),
    ModuleItem('tissue_handling', 'Conjunctival and Corneal Tissue Handling'),
    ModuleItem('spatial_awareness', 'Intraocular Spatial Awareness'),
    ModuleItem('iris_protection', 'Iris Protection'),
    ModuleItem('speed_fluidity', 'Overall Speed and Fluidity of Procedure'),
    ModuleItem('communication', 'Communication with patient'),
)

OPD_ITEMS = (
    ModuleItem('history', 'History Taking'),
    ModuleItem('exam', 'Physical Examination'),
    ModuleItem('diagnosis', 'Differential Diagnosis'),
    ModuleItem('plan', 'Management Plan'),
    ModuleItem('counsel', 'Patient Counseling'),
)

WETLAB_ITEMS = (
    ModuleItem('procedureSteps', 'Procedure Steps'),
    ModuleItem('tissueHandling', 'Tissue Handling'),
    ModuleItem('timeManagement', 'Time Management'),
    ModuleItem('outcome', 'Outcome'),
)

ACADEMIC_ITEMS = (
    ModuleItem('presentationQuality', 'Presentation Quality'),
    ModuleItem('content', 'Content Depth'),
    ModuleItem('qaHandling', 'Q&A Handling'),
    ModuleItem('slidesQuality', 'Slides Quality'),
    ModuleItem('timing', 'Timing'),
)

SURGERY = EvaluationModule(
    module=EvaluationRecord.MODULE_SURGERY,
    title='Surgery',
    kind=KIND_SCORE,
    items=SURGERY_ITEMS,
    header_fields=('patientName', 'surgeryName', 'gradeOfCataract', 'draping'),
    remark_below=3,
    grade_bands=((80, 'Excellent'), (50, 'Average')),
    lowest_grade='Poor',
    fixed_code='SURGERY',
    unique_detail='patientName',
)

OPD = EvaluationModule(
    module=EvaluationRecord.MODULE_OPD,
    title='OPD',
    kind=KIND_YESNO,
    items=OPD_ITEMS,
    header_fields=('procedureName',),
)

WETLAB = EvaluationModule(
    module=EvaluationRecord.MODULE_WETLAB,
    title='Wet lab',
    kind=KIND_SCORE,
    items=WETLAB_ITEMS,
    header_fields=('exerciseName',),
    grade_bands=((80, 'Excellent'), (50, 'Average')),
    lowest_grade='Poor',
    fixed_code='WETLAB',
)

ACADEMIC = EvaluationModule(
    module=EvaluationRecord.MODULE_ACADEMIC,
    title='Academic',
    kind=KIND_SCORE,
    items=ACADEMIC_ITEMS,
    header_fields=('evaluationType', 'topic'),
    grade_bands=((80, 'Excellent'), (50, 'Good')),
    lowest_grade='Below Average',
    fixed_code='ACADEMIC',
)

MODULES = {m.module: m for m in (SURGERY, OPD, WETLAB, ACADEMIC)}


def get_module(name: str) -> EvaluationModule:
    try:
        return MODULES[name]
    except KeyError:
        raise ValueError(f"unknown evaluation module {name!r}")
