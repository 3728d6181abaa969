"""Starter routing rules created for a new organization."""

DEFAULT_RULES = [
    {
        "name": "Employee Documents",
        "priority": 110,
        "conditions": {"requires_employee": True},
        "actions": {"folder_path": "documents/employees/{employee_name}/{date}"},
    },
    {
        "name": "PDF Documents",
        "priority": 100,
        "conditions": {"file_types": ["pdf"]},
        "actions": {"folder_path": "documents/pdf/{date}"},
    },
    {
        "name": "Word Documents",
        "priority": 90,
        "conditions": {"file_types": ["doc", "docx"]},
        "actions": {"folder_path": "documents/word/{date}"},
    },
    {
        "name": "Excel Spreadsheets",
        "priority": 80,
        "conditions": {"file_types": ["xls", "xlsx"]},
        "actions": {"folder_path": "documents/spreadsheets/{date}"},
    },
    {
        "name": "Invoices",
        "priority": 70,
        "conditions": {"subject_pattern": ".*(?:invoice|bill|payment).*"},
        "actions": {"folder_path": "documents/invoices/{year}/{month}"},
    },
    {
        "name": "Contracts",
        "priority": 60,
        "conditions": {"subject_pattern": ".*(?:contract|agreement|legal).*"},
        "actions": {"folder_path": "documents/contracts/{year}"},
    },
    {
        "name": "Default Catch-All",
        "priority": 0,
        "conditions": {},
        "actions": {"folder_path": "documents/{date}"},
    },
]
