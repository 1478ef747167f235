from typing import Optional, Tuple

# Canonical admission stages, in order. Every component resolves progress
# against this list.
ADMISSION_STAGES = [
    "Registration for Counselling (MHT-CET 2026)",
    "Document Verification at Facilitation Centre",
    "Display of Merit List",
    "Filling Option Form for CAP Rounds",
    "Seat Allotment",
    "Accepting Offered Seat",
    "Reporting to Allotted Institute",
    "Commencement of Course",
]

WHATS_NEXT = {
    "Registration for Counselling (MHT-CET 2026)": "Complete your registration for MHT-CET 2026 counselling",
    "Document Verification at Facilitation Centre": "Visit the Facilitation Centre for document verification",
    "Display of Merit List": "Await the display of State Level / All India Merit List",
    "Filling Option Form for CAP Rounds": "Fill your option form for CAP Rounds",
    "Seat Allotment": "Await seat allotment results",
    "Accepting Offered Seat": "Accept your offered seat via Candidate Login",
    "Reporting to Allotted Institute": "Report to your allotted institute with documents",
    "Commencement of Course": "Congratulations! Your admission is complete. Best of luck!",
}

DOCUMENT_TYPES = {
    "fc-arc": "FC & ARC Document Verification Letter",
    "jee-mhtcet": "JEE / MHT-CET Marksheet",
    "ssc-hsc": "SSC & HSC Marksheet",
    "leaving": "Leaving Certificate",
    "domicile": "Domicile Certificate",
    "nationality": "Nationality Certificate / Performa-1",
    "income": "Income Certificate",
    "photograph": "Photograph",
    "parents-nationality": "Parents' Nationality / Domicile Certificate",
    "aadhaar": "Aadhaar Card",
    "caste": "Caste Certificate",
    "caste-validity": "Caste Validity Certificate",
    "ncl": "Non-Creamy Layer Certificate",
}


def get_stage(stage_name: Optional[str]) -> Tuple[str, int]:
    """Resolve a stored stage name to (canonical name, index).

    Unknown or missing names resolve to the first stage.
    """
    if stage_name in ADMISSION_STAGES:
        return stage_name, ADMISSION_STAGES.index(stage_name)
    return ADMISSION_STAGES[0], 0


def is_valid_stage(stage_name: Optional[str]) -> bool:
    return bool(stage_name) and stage_name in ADMISSION_STAGES


def whats_next(stage_name: Optional[str]) -> str:
    resolved, _ = get_stage(stage_name)
    return WHATS_NEXT[resolved]
