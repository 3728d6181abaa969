"""Standard document request types and their accepted spellings"""

from typing import Dict, List, Optional

OTHER = "other"

REQUEST_TYPE_SYNONYMS: Dict[str, List[str]] = {
    "passport": ["passports", "international passport"],
    "drivers_license": ["driver's license", "drivers license", "driver license", "dl", "driving license"],
    "id_card": ["id card", "identification card", "id", "government id"],
    "birth_certificate": ["birth certificate", "birth cert", "bc"],
    "visa": ["visas", "travel visa", "work visa"],
    "ead": ["employment authorization document", "work permit"],
    "mec": ["medical examiner card", "medical card", "dot medical card"],
    "ssn": ["social security number", "social security card", "ss card"],
    "i9": ["i-9", "form i-9", "form i9", "employment eligibility"],
    "w2": ["w-2", "wage statement", "tax form w-2"],
}

REQUEST_TYPES = [*REQUEST_TYPE_SYNONYMS, OTHER]

_LOOKUP = {
    spelling: code
    for code, synonyms in REQUEST_TYPE_SYNONYMS.items()
    for spelling in [code, code.replace("_", " "), *synonyms]
}


def normalize_request_type(value: Optional[str]) -> Optional[str]:
    """Map free text to a standard code; unknown text becomes "other".

    >>> normalize_request_type("Driver's License")
    'drivers_license'
    >>> normalize_request_type("Library card")
    'other'
    """
    if value is None or not value.strip():
        return None
    return _LOOKUP.get(" ".join(value.strip().lower().split()), OTHER)
