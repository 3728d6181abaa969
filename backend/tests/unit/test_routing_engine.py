"""Unit tests for routing rule evaluation and folder path generation"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

import pytest

from docuflow.routing.defaults import DEFAULT_RULES
from docuflow.routing.engine import (
    RoutingContext,
    generate_storage_path,
    match_routing_rule,
    normalize_subject,
    resolve_route,
    sanitize_path,
    validate_pattern,
)


@dataclass
class Rule:
    name: str
    priority: int = 0
    conditions: dict = field(default_factory=dict)
    actions: dict = field(default_factory=dict)
    is_active: bool = True
    id: str = "rule"


def default_rules():
    return [Rule(id=r["name"], **r) for r in DEFAULT_RULES]


WHEN = datetime(2024, 3, 9, 14, 30, tzinfo=timezone.utc)


class TestNormalizeSubject:

    @pytest.mark.parametrize("subject,expected", [
        ("RE: Passport copy", "Passport copy"),
        ("Fwd: Passport copy", "Passport copy"),
        ("fw:Passport copy", "Passport copy"),
        ("Re:Fwd: Passport copy", "Passport copy"),
        ("[HR-42] Passport copy", "Passport copy"),
        ("RE: [HR-42] Passport copy", "Passport copy"),
        ("Passport copy", "Passport copy"),
        ("", ""),
        (None, ""),
    ])
    def test_normalize(self, subject, expected):
        assert normalize_subject(subject) == expected

    def test_only_one_prefix_is_stripped(self):
        assert normalize_subject("RE: RE: Contract") == "RE: Contract"


class TestConditions:

    def test_rule_without_conditions_matches_everything(self):
        match = match_routing_rule([Rule("catch-all")], RoutingContext(sender_email="a@b.com"))
        assert match is not None
        assert match.matched_conditions == []

    def test_sender_pattern_is_case_insensitive(self):
        rule = Rule("acme", conditions={"sender_pattern": r"@acme\.com$"})
        assert match_routing_rule([rule], RoutingContext(sender_email="Jane@ACME.com")) is not None
        assert match_routing_rule([rule], RoutingContext(sender_email="jane@other.com")) is None

    def test_subject_pattern_checks_normalized_subject(self):
        rule = Rule("invoice", conditions={"subject_pattern": r"^invoice"})
        ctx = RoutingContext(sender_email="a@b.com", subject="RE: Invoice 2024-001")
        match = match_routing_rule([rule], ctx)
        assert match is not None
        assert match.matched_conditions == ["subject_pattern"]

    def test_file_types_need_one_matching_attachment(self):
        rule = Rule("pdf", conditions={"file_types": [".PDF"]})
        ctx = RoutingContext(sender_email="a@b.com", attachment_filenames=["photo.jpg", "scan.pdf"])
        assert match_routing_rule([rule], ctx) is not None

        ctx = RoutingContext(sender_email="a@b.com", attachment_filenames=["photo.jpg", "README"])
        assert match_routing_rule([rule], ctx) is None

    def test_requires_employee(self):
        rule = Rule("employees", conditions={"requires_employee": True})
        assert match_routing_rule([rule], RoutingContext(sender_email="a@b.com")) is None

        ctx = RoutingContext(sender_email="a@b.com", employee_name="Ana Lee")
        assert match_routing_rule([rule], ctx) is not None

        ctx = RoutingContext(sender_email="a@b.com", document_request_id="req-1")
        assert match_routing_rule([rule], ctx) is not None

    def test_all_conditions_must_hold(self):
        rule = Rule("both", conditions={"sender_pattern": "acme", "file_types": ["pdf"]})
        ctx = RoutingContext(sender_email="a@acme.com", attachment_filenames=["x.docx"])
        assert match_routing_rule([rule], ctx) is None


class TestPriority:

    def test_highest_priority_wins(self):
        low = Rule("low", priority=1, id="low")
        high = Rule("high", priority=50, id="high")
        match = match_routing_rule([low, high], RoutingContext(sender_email="a@b.com"))
        assert match.rule.id == "high"

    def test_equal_priority_keeps_input_order(self):
        first = Rule("first", priority=5, id="first")
        second = Rule("second", priority=5, id="second")
        match = match_routing_rule([first, second], RoutingContext(sender_email="a@b.com"))
        assert match.rule.id == "first"

    def test_inactive_rules_are_skipped(self):
        inactive = Rule("inactive", priority=100, is_active=False, id="inactive")
        active = Rule("active", priority=0, id="active")
        match = match_routing_rule([inactive, active], RoutingContext(sender_email="a@b.com"))
        assert match.rule.id == "active"

    def test_invalid_pattern_never_matches(self):
        broken = Rule("broken", priority=100, conditions={"sender_pattern": "(unclosed"}, id="broken")
        fallback = Rule("fallback", id="fallback")
        match = match_routing_rule([broken, fallback], RoutingContext(sender_email="a@b.com"))
        assert match.rule.id == "fallback"

    def test_no_rules_no_match(self):
        assert match_routing_rule([], RoutingContext(sender_email="a@b.com")) is None


class TestDefaultRules:

    def test_employee_rule_beats_file_type(self):
        ctx = RoutingContext(
            sender_email="ana@acme.com",
            employee_name="Ana Lee",
            attachment_filenames=["passport.pdf"],
        )
        decision = resolve_route(default_rules(), ctx, WHEN)
        assert decision.rule.name == "Employee Documents"
        assert decision.folder_path == "documents/employees/Ana Lee/2024-03-09"

    def test_pdf_from_unknown_sender(self):
        ctx = RoutingContext(sender_email="x@y.com", attachment_filenames=["scan.PDF"])
        decision = resolve_route(default_rules(), ctx, WHEN)
        assert decision.rule.name == "PDF Documents"
        assert decision.folder_path == "documents/pdf/2024-03-09"

    def test_invoice_subject(self):
        ctx = RoutingContext(sender_email="x@y.com", subject="Your invoice", attachment_filenames=["a.png"])
        decision = resolve_route(default_rules(), ctx, WHEN)
        assert decision.rule.name == "Invoices"
        assert decision.folder_path == "documents/invoices/2024/03"

    def test_catch_all(self):
        ctx = RoutingContext(sender_email="x@y.com", subject="Hello", attachment_filenames=["a.png"])
        decision = resolve_route(default_rules(), ctx, WHEN)
        assert decision.rule.name == "Default Catch-All"
        assert decision.folder_path == "documents/2024-03-09"


class TestResolveRoute:

    def test_no_match_uses_default_folder(self):
        decision = resolve_route([], RoutingContext(sender_email="a@b.com"), WHEN)
        assert decision.rule is None
        assert decision.folder_path == "documents/2024-03-09"
        assert decision.storage_id is None

    def test_actions_are_returned(self):
        rule = Rule("hr", actions={"storage_id": "abc", "folder_path": "hr/{year}", "metadata": {"dept": "HR"}})
        decision = resolve_route([rule], RoutingContext(sender_email="a@b.com"), WHEN)
        assert decision.storage_id == "abc"
        assert decision.folder_path == "hr/2024"
        assert decision.metadata == {"dept": "HR"}


class TestStoragePath:

    def test_placeholders(self):
        ctx = RoutingContext(
            sender_email="ana@acme.com",
            sender_name="Ana Lee",
            employee_name="Ana M. Lee",
            employee_email="ana.lee@acme.com",
        )
        path = generate_storage_path(
            "in/{sender_email}/{sender_name}/{employee_name}/{employee_email}/{date}/{year}/{month}", ctx, WHEN
        )
        assert path == "in/ana@acme.com/Ana Lee/Ana M. Lee/ana.lee@acme.com/2024-03-09/2024/03"

    def test_employee_placeholders_fall_back_to_sender(self):
        ctx = RoutingContext(sender_email="x@y.com")
        assert generate_storage_path("{employee_name}/{employee_email}", ctx, WHEN) == "x@y.com/x@y.com"

    def test_unknown_placeholder_kept(self):
        ctx = RoutingContext(sender_email="x@y.com")
        assert generate_storage_path("a/{unknown}", ctx, WHEN) == "a/{unknown}"

    def test_values_cannot_add_segments(self):
        ctx = RoutingContext(sender_email="x@y.com", sender_name="../../etc/passwd")
        path = generate_storage_path("in/{sender_name}", ctx, WHEN)
        assert path == "in/.._.._etc_passwd"
        assert ".." not in path.split("/")

    def test_received_at_used_when_now_missing(self):
        ctx = RoutingContext(sender_email="x@y.com", received_at=datetime(2023, 12, 1, tzinfo=timezone.utc))
        assert generate_storage_path("{date}", ctx) == "2023-12-01"

    @pytest.mark.parametrize("raw,expected", [
        ("a//b///c", "a/b/c"),
        ("/a/b/", "a/b"),
        ("a\\b", "a/b"),
        ("a/./../b", "a/b"),
        ('in/what?<x>:y*"', "in/what__x__y__"),
    ])
    def test_sanitize(self, raw, expected):
        assert sanitize_path(raw) == expected


class TestValidatePattern:

    def test_valid(self):
        assert validate_pattern(r".*@acme\.com") is None
        assert validate_pattern(None) is None

    def test_invalid(self):
        error = validate_pattern("[unclosed")
        assert error is not None
        assert "[unclosed" in error
