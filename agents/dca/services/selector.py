"""
Due-plan selection. Pure functions over plan schedule fields.
"""
from agents.dca.models.domain import Plan


def seconds_since_last(plan: Plan, now: int) -> int:
    return now - plan.last_executed_at


def is_due(plan: Plan, now: int) -> bool:
    """Active and at least one full interval since the last execution.

    A last_executed_at in the future gives a negative elapsed time, which can
    never reach a positive frequency.
    """
    if not plan.active:
        return False
    return seconds_since_last(plan, now) >= plan.frequency


def seconds_until_due(plan: Plan, now: int) -> int:
    return max(0, plan.frequency - seconds_since_last(plan, now))


def select_due(plans: list[Plan], now: int) -> list[Plan]:
    """Due plans in the order given."""
    return [p for p in plans if is_due(p, now)]
