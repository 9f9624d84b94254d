"""
Dosage Rules for cardiac-arrest drugs.

Pure table lookup from patient age band (and dose ordinal) to a dose string.
Nineteen discrete bands run from "At birth" to "≥12 years / Adult".

Amiodarone has no defined dose for the two youngest bands. Callers must treat
`None` as "manual entry required", not as an error.
"""

from enum import Enum
from typing import Dict, Optional, Tuple
import numpy as np


# =============================================================================
# ENUMS
# =============================================================================

class Drug(Enum):
    """Drugs with age-banded doses."""
    ADRENALINE = "adrenaline"
    AMIODARONE = "amiodarone"


class PatientAgeCategory(Enum):
    """Age bands, oldest first (display order)."""
    ADULT = "≥12 years / Adult"
    ELEVEN_YEARS = "11 years"
    TEN_YEARS = "10 years"
    NINE_YEARS = "9 years"
    EIGHT_YEARS = "8 years"
    SEVEN_YEARS = "7 years"
    SIX_YEARS = "6 years"
    FIVE_YEARS = "5 years"
    FOUR_YEARS = "4 years"
    THREE_YEARS = "3 years"
    TWO_YEARS = "2 years"
    EIGHTEEN_MONTHS = "18 months"
    TWELVE_MONTHS = "12 months"
    NINE_MONTHS = "9 months"
    SIX_MONTHS = "6 months"
    THREE_MONTHS = "3 months"
    ONE_MONTH = "1 month"
    POST_BIRTH_TO_ONE_MONTH = "Post-birth to 1 month"
    AT_BIRTH = "At birth"


# =============================================================================
# DOSE TABLES
# =============================================================================

ADRENALINE_DOSES: Dict[PatientAgeCategory, str] = {
    PatientAgeCategory.ADULT: "1mg",
    PatientAgeCategory.ELEVEN_YEARS: "350mcg",
    PatientAgeCategory.TEN_YEARS: "320mcg",
    PatientAgeCategory.NINE_YEARS: "300mcg",
    PatientAgeCategory.EIGHT_YEARS: "260mcg",
    PatientAgeCategory.SEVEN_YEARS: "230mcg",
    PatientAgeCategory.SIX_YEARS: "210mcg",
    PatientAgeCategory.FIVE_YEARS: "190mcg",
    PatientAgeCategory.FOUR_YEARS: "160mcg",
    PatientAgeCategory.THREE_YEARS: "140mcg",
    PatientAgeCategory.TWO_YEARS: "120mcg",
    PatientAgeCategory.EIGHTEEN_MONTHS: "110mcg",
    PatientAgeCategory.TWELVE_MONTHS: "100mcg",
    PatientAgeCategory.NINE_MONTHS: "90mcg",
    PatientAgeCategory.SIX_MONTHS: "80mcg",
    PatientAgeCategory.THREE_MONTHS: "60mcg",
    PatientAgeCategory.ONE_MONTH: "50mcg",
    PatientAgeCategory.POST_BIRTH_TO_ONE_MONTH: "50mcg",
    PatientAgeCategory.AT_BIRTH: "70mcg",
}

# (first dose, repeat dose); None where no paediatric dose is defined
AMIODARONE_DOSES: Dict[PatientAgeCategory, Optional[Tuple[str, str]]] = {
    PatientAgeCategory.ADULT: ("300mg", "150mg"),
    PatientAgeCategory.ELEVEN_YEARS: ("180mg", "180mg"),
    PatientAgeCategory.TEN_YEARS: ("160mg", "160mg"),
    PatientAgeCategory.NINE_YEARS: ("150mg", "150mg"),
    PatientAgeCategory.EIGHT_YEARS: ("130mg", "130mg"),
    PatientAgeCategory.SEVEN_YEARS: ("120mg", "120mg"),
    PatientAgeCategory.SIX_YEARS: ("100mg", "100mg"),
    PatientAgeCategory.FIVE_YEARS: ("100mg", "100mg"),
    PatientAgeCategory.FOUR_YEARS: ("80mg", "80mg"),
    PatientAgeCategory.THREE_YEARS: ("70mg", "60mg"),
    PatientAgeCategory.TWO_YEARS: ("60mg", "60mg"),
    PatientAgeCategory.EIGHTEEN_MONTHS: ("55mg", "55mg"),
    PatientAgeCategory.TWELVE_MONTHS: ("50mg", "50mg"),
    PatientAgeCategory.NINE_MONTHS: ("45mg", "45mg"),
    PatientAgeCategory.SIX_MONTHS: ("40mg", "40mg"),
    PatientAgeCategory.THREE_MONTHS: ("30mg", "30mg"),
    PatientAgeCategory.ONE_MONTH: ("25mg", "25mg"),
    PatientAgeCategory.POST_BIRTH_TO_ONE_MONTH: None,
    PatientAgeCategory.AT_BIRTH: None,
}


def dose_for(
    drug: Drug,
    age_category: PatientAgeCategory,
    dose_ordinal: int = 1,
) -> Optional[str]:
    """
    Look up the dose string for a drug at a given age band.

    Args:
        drug: Drug to dose
        age_category: Patient age band
        dose_ordinal: 1 for the first dose, 2 or more for repeat doses

    Returns:
        Dose string such as "300mg", or None when manual entry is required
    """
    if dose_ordinal < 1:
        raise ValueError(f"dose_ordinal must be >= 1, got {dose_ordinal}")

    if drug == Drug.ADRENALINE:
        return ADRENALINE_DOSES[age_category]
    elif drug == Drug.AMIODARONE:
        doses = AMIODARONE_DOSES[age_category]
        if doses is None:
            return None
        return doses[0] if dose_ordinal == 1 else doses[1]
    raise ValueError(f"Unknown drug: {drug}")


# =============================================================================
# AGE TO BAND
# =============================================================================

# Lower bound in months for each band from "Post-birth to 1 month" upward.
# "At birth" is only selected explicitly.
_BAND_LOWER_MONTHS = np.array([0, 1, 3, 6, 9, 12, 18, 24, 36, 48, 60, 72, 84, 96, 108, 120, 132, 144])
_BANDS_ASCENDING = [
    PatientAgeCategory.POST_BIRTH_TO_ONE_MONTH,
    PatientAgeCategory.ONE_MONTH,
    PatientAgeCategory.THREE_MONTHS,
    PatientAgeCategory.SIX_MONTHS,
    PatientAgeCategory.NINE_MONTHS,
    PatientAgeCategory.TWELVE_MONTHS,
    PatientAgeCategory.EIGHTEEN_MONTHS,
    PatientAgeCategory.TWO_YEARS,
    PatientAgeCategory.THREE_YEARS,
    PatientAgeCategory.FOUR_YEARS,
    PatientAgeCategory.FIVE_YEARS,
    PatientAgeCategory.SIX_YEARS,
    PatientAgeCategory.SEVEN_YEARS,
    PatientAgeCategory.EIGHT_YEARS,
    PatientAgeCategory.NINE_YEARS,
    PatientAgeCategory.TEN_YEARS,
    PatientAgeCategory.ELEVEN_YEARS,
    PatientAgeCategory.ADULT,
]


def category_for_age(age_months: float, at_birth: bool = False) -> PatientAgeCategory:
    """
    Map an age in months to its dosing band.

    Ages fall into the highest band whose lower bound they have reached,
    e.g. 30 months -> "2 years", 150 months -> adult.
    """
    if at_birth:
        return PatientAgeCategory.AT_BIRTH
    if age_months < 0:
        raise ValueError(f"age_months must not be negative, got {age_months}")
    idx = int(np.searchsorted(_BAND_LOWER_MONTHS, age_months, side="right")) - 1
    return _BANDS_ASCENDING[idx]
