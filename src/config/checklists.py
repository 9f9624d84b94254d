"""
Checklist templates and clinical vocabulary.

Templates are immutable tuples of names; every reset builds fresh
`ChecklistItem` objects from them so no state leaks between episodes.
"""

from typing import Dict, List, Tuple

from data.contracts import ChecklistItem, ChecklistKind


# =============================================================================
# CHECKLIST TEMPLATES
# =============================================================================

# 4 Hs and 4 Ts
REVERSIBLE_CAUSES: Tuple[str, ...] = (
    "Hypoxia",
    "Hypovolemia",
    "Hypo/Hyperkalaemia",
    "Hypothermia",
    "Toxins",
    "Tamponade",
    "Tension Pneumothorax",
    "Thrombosis",
)

POST_ROSC_TASKS: Tuple[str, ...] = (
    "Optimise Ventilation & Oxygenation",
    "12-Lead ECG",
    "Treat Hypotension (SBP < 90)",
    "Check Blood Glucose",
    "Consider Temperature Control",
    "Identify & Treat Causes",
)

POST_MORTEM_TASKS: Tuple[str, ...] = (
    "Reposition body & remove lines/tubes",
    "Complete documentation",
    "Determine expected/unexpected death",
    "Contact Coroner (if unexpected)",
    "Follow local body handling procedure",
    "Provide leaflet to bereaved relatives",
    "Consider organ/tissue donation",
)

CHECKLIST_TEMPLATES: Dict[ChecklistKind, Tuple[str, ...]] = {
    ChecklistKind.REVERSIBLE_CAUSES: REVERSIBLE_CAUSES,
    ChecklistKind.POST_ROSC: POST_ROSC_TASKS,
    ChecklistKind.POST_MORTEM: POST_MORTEM_TASKS,
}


def build_checklist(kind: ChecklistKind) -> List[ChecklistItem]:
    """Create a fresh, uncompleted checklist from its template."""
    return [ChecklistItem(name=name) for name in CHECKLIST_TEMPLATES[kind]]


# =============================================================================
# CLINICAL VOCABULARY
# =============================================================================

OTHER_MEDICATIONS: Tuple[str, ...] = tuple(sorted([
    "Adenosine",
    "Adrenaline 1:1000",
    "Adrenaline 1:10,000",
    "Amiodarone (Further Dose)",
    "Atropine",
    "Calcium chloride",
    "Glucose",
    "Hartmann’s solution",
    "Magnesium sulphate",
    "Midazolam",
    "Naloxone",
    "Potassium chloride",
    "Sodium bicarbonate",
    "Sodium chloride",
    "Tranexamic acid",
]))

# Rhythm name -> shockable
RHYTHMS: Dict[str, bool] = {
    "VF": True,
    "VT": True,
    "PEA": False,
    "Asystole": False,
}


def is_shockable(rhythm: str) -> bool:
    """Look up whether a named rhythm is shockable."""
    if rhythm not in RHYTHMS:
        raise ValueError(f"Unknown rhythm: {rhythm}")
    return RHYTHMS[rhythm]
