"""
Service deciding whether a ticket belongs to the monitored onsite program.

Rules are named predicates grouped into rule groups. Within a group any
rule may match; groups are combined with the configured match mode. With
`require_site_inspection` the program group is ANDed with the stricter
site-inspection group, otherwise the program group decides alone.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from app.constants.onsite_program import (
    BODY_KEYWORDS,
    MONITORED_SERVICE_KEYWORD,
    PROGRAM_CATEGORY_KEYWORD,
    PROGRAM_LABEL,
    SITE_INSPECTION_KEYWORD,
    SITE_INSPECTION_ONSITE_TYPES,
    SITE_INSPECTION_REQUEST_TYPES,
    AttributeKey,
)
from app.infra.logging_config import get_logger
from app.schemas.ticket import ClassificationVerdict, MatchMode, TicketSnapshot

logger = get_logger("classification_service")

Predicate = Callable[[TicketSnapshot], bool]


@dataclass(frozen=True)
class Rule:
    name: str
    predicate: Predicate

    def evaluate(self, snapshot: TicketSnapshot) -> bool:
        try:
            return bool(self.predicate(snapshot))
        except Exception:  # a broken rule is a non-match, not a failed event
            logger.warning(
                "Classification rule %s raised for ticket %s",
                self.name,
                snapshot.id,
                exc_info=True,
            )
            return False


@dataclass(frozen=True)
class RuleGroup:
    name: str
    rules: tuple[Rule, ...]
    mode: MatchMode = MatchMode.ANY


def _attr_text(snapshot: TicketSnapshot, key: str) -> Optional[str]:
    value: Any = snapshot.custom_attributes.get(key)
    return value if isinstance(value, str) else None


def _contains(text: Optional[str], needle: str) -> bool:
    return bool(text) and needle.lower() in text.lower()


def team_rule(team_id: str) -> Rule:
    expected = str(team_id).strip()

    def predicate(snapshot: TicketSnapshot) -> bool:
        value = snapshot.team_assignee_id
        if value is None or isinstance(value, bool):
            return False
        return bool(expected) and str(value).strip() == expected

    return Rule("team_assignment", predicate)


def _ticket_type(snapshot: TicketSnapshot) -> bool:
    return _attr_text(snapshot, AttributeKey.TICKET_TYPE) == PROGRAM_LABEL


def _tier_support_type(snapshot: TicketSnapshot) -> bool:
    return _contains(
        _attr_text(snapshot, AttributeKey.TIER_SUPPORT_TYPE),
        MONITORED_SERVICE_KEYWORD,
    )


def _ticket_category(snapshot: TicketSnapshot) -> bool:
    category = _attr_text(snapshot, AttributeKey.TICKET_CATEGORY)
    return category == PROGRAM_LABEL or _contains(category, PROGRAM_CATEGORY_KEYWORD)


def _onsite_request_type(snapshot: TicketSnapshot) -> bool:
    return (
        _attr_text(snapshot, AttributeKey.ONSITE_REQUEST_TYPE)
        in SITE_INSPECTION_REQUEST_TYPES
    )


def _keyword_scan(snapshot: TicketSnapshot) -> bool:
    if not snapshot.conversation_parts:
        return False
    body = snapshot.conversation_parts[0].body
    return any(_contains(body, keyword) for keyword in BODY_KEYWORDS)


def _site_inspection_text(snapshot: TicketSnapshot) -> bool:
    return any(
        _contains(text, SITE_INSPECTION_KEYWORD)
        for text in (
            snapshot.title,
            snapshot.source_body,
            _attr_text(snapshot, AttributeKey.DESCRIPTION),
        )
    )


def _site_inspection_type(snapshot: TicketSnapshot) -> bool:
    onsite_type = _attr_text(snapshot, AttributeKey.ONSITE_REQUEST_TYPE)
    return any(_contains(onsite_type, label) for label in SITE_INSPECTION_ONSITE_TYPES)


def program_rules(team_id: str) -> RuleGroup:
    return RuleGroup(
        name="program",
        rules=(
            team_rule(team_id),
            Rule("ticket_type", _ticket_type),
            Rule("tier_support_type", _tier_support_type),
            Rule("ticket_category", _ticket_category),
            Rule("onsite_request_type", _onsite_request_type),
            Rule("keyword_scan", _keyword_scan),
        ),
    )


def site_inspection_rules() -> RuleGroup:
    return RuleGroup(
        name="site_inspection",
        rules=(
            Rule("site_inspection_text", _site_inspection_text),
            Rule("site_inspection_type", _site_inspection_type),
        ),
    )


class ClassificationService:
    """Pure, total classifier over raw webhook snapshots."""

    def __init__(
        self, groups: Sequence[RuleGroup], mode: MatchMode = MatchMode.ALL
    ) -> None:
        if not groups:
            raise ValueError("At least one rule group is required")
        self.groups = tuple(groups)
        self.mode = mode

    @classmethod
    def for_program(
        cls, team_id: str, require_site_inspection: bool = False
    ) -> "ClassificationService":
        """Build the classifier for the monitored program."""
        groups = [program_rules(team_id)]
        if require_site_inspection:
            groups.append(site_inspection_rules())
        service = cls(groups, mode=MatchMode.ALL)
        logger.info(
            "Classifier composition: %s (require_site_inspection=%s)",
            " AND ".join(group.name for group in service.groups),
            require_site_inspection,
        )
        return service

    def classify(self, snapshot: TicketSnapshot) -> ClassificationVerdict:
        checks: dict[str, bool] = {}
        group_results: list[bool] = []
        first_match: Optional[str] = None
        for group in self.groups:
            results = [rule.evaluate(snapshot) for rule in group.rules]
            for rule, result in zip(group.rules, results):
                checks[rule.name] = result
                if result and first_match is None:
                    first_match = rule.name
            group_results.append(self._combine(results, group.mode))

        matched = self._combine(group_results, self.mode)
        verdict = ClassificationVerdict(
            matched=matched,
            rule=first_match if matched else None,
            checks=checks,
            mode=self.mode,
        )
        logger.debug(
            "Classified ticket %s: matched=%s rule=%s checks=%s",
            snapshot.id,
            verdict.matched,
            verdict.rule,
            checks,
        )
        return verdict

    @staticmethod
    def _combine(results: Sequence[bool], mode: MatchMode) -> bool:
        if mode == MatchMode.ALL:
            return all(results)
        return any(results)
