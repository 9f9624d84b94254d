# Dosage rules
# v1.2: Age-banded adrenaline and amiodarone doses

from .dosage_rules import (
    Drug,
    PatientAgeCategory,
    ADRENALINE_DOSES,
    AMIODARONE_DOSES,
    dose_for,
    category_for_age,
)

__all__ = [
    'Drug',
    'PatientAgeCategory',
    'ADRENALINE_DOSES',
    'AMIODARONE_DOSES',
    'dose_for',
    'category_for_age',
]
