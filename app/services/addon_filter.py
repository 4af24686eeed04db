import logging
from enum import Enum
from typing import Iterable, List

from app.schemas.payload import ItemKind
from app.services.normalizer import NormalizedTicket, ResolvedCostItem

logger = logging.getLogger(__name__)

ALL_TICKETS = "ALL"


class AddOnMatchRule(str, Enum):
    # a genuine add-on whose name contains the label
    STRICT = "strict"
    # deprecated: any cost item whose name contains the label, primary included
    ANY_ITEM = "any_item"


def resolve_match_rule(value) -> AddOnMatchRule:
    rule = AddOnMatchRule(str(value).strip().lower())
    if rule == AddOnMatchRule.ANY_ITEM:
        logger.warning(
            "Add-on match rule 'any_item' is deprecated; primary tickets whose name matches will also be exported")
    return rule


def passes_everything(target_label: str) -> bool:
    return (target_label or "").strip().upper() == ALL_TICKETS


def has_target_add_on(cost_items: Iterable[ResolvedCostItem], target_label: str,
                      rule: AddOnMatchRule = AddOnMatchRule.STRICT) -> bool:
    needle = (target_label or "").strip().lower()
    for item in cost_items:
        if rule == AddOnMatchRule.STRICT and item.kind != ItemKind.ADD_ON:
            continue
        if needle in item.display_name.lower():
            return True
    return False


def filter_by_target(tickets: Iterable[NormalizedTicket], target_label: str,
                     rule: AddOnMatchRule = AddOnMatchRule.STRICT) -> List[NormalizedTicket]:
    """
    Keep the tickets that carry the configured add-on.

    Works on the resolved cost items rather than the joined add-on string,
    since the join loses which item was the primary ticket.
    """
    tickets = list(tickets)
    if passes_everything(target_label):
        return tickets

    kept = []
    for ticket in tickets:
        if has_target_add_on(ticket.cost_items, target_label, rule):
            kept.append(ticket)
        else:
            logger.info(
                f"Ticket {ticket.record.ticket_id} has no add-on matching {target_label!r}, not exported")
    return kept
