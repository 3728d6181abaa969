from .engine import (
    RoutingContext,
    RoutingDecision,
    RuleMatch,
    generate_storage_path,
    match_routing_rule,
    normalize_subject,
    resolve_route,
)

__all__ = [
    "RoutingContext",
    "RoutingDecision",
    "RuleMatch",
    "generate_storage_path",
    "match_routing_rule",
    "normalize_subject",
    "resolve_route",
]
