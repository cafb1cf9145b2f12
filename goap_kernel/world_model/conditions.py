"""
Condition matching and effect application over world state mappings.

Shared by the Planner (regression and replay), the Executor (live
precondition checks) and the store (applying effects).
"""

from typing import Any, Dict, Iterable, Mapping, Tuple

from goap_kernel.models.world import (
    ConditionOperator,
    EffectOp,
    EffectOperation,
    Predicate,
)

MISSING = object()

_ORDERING = {
    ConditionOperator.GT: lambda a, b: a > b,
    ConditionOperator.LT: lambda a, b: a < b,
    ConditionOperator.GTE: lambda a, b: a >= b,
    ConditionOperator.LTE: lambda a, b: a <= b,
}


def freeze(value: Any) -> Any:
    """Return an immutable equivalent of a state value (lists become tuples)."""
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


def _same_literal(actual: Any, expected: Any) -> bool:
    if isinstance(expected, (list, tuple)):
        return isinstance(actual, (list, tuple)) and tuple(actual) == tuple(expected)
    # True == 1 in Python; state values of different kinds never match
    if isinstance(expected, bool) or isinstance(actual, bool):
        return (
            isinstance(actual, bool)
            and isinstance(expected, bool)
            and actual == expected
        )
    return actual == expected


def _check_predicate(actual: Any, predicate: Predicate) -> bool:
    op = predicate.operator
    value = predicate.value
    absent = actual is MISSING or actual is None

    if op == ConditionOperator.EXISTS:
        return not absent
    if op == ConditionOperator.NOT_EXISTS:
        return absent
    if op == ConditionOperator.NE:
        return absent or not _same_literal(actual, value)
    if absent:
        return False
    if op == ConditionOperator.CONTAINS:
        return isinstance(actual, (list, tuple)) and value in actual
    if op == ConditionOperator.NOT_CONTAINS:
        return isinstance(actual, (list, tuple)) and value not in actual

    # Ordering operators compare list length for list-valued keys
    measured = len(actual) if isinstance(actual, (list, tuple)) else actual
    if isinstance(measured, bool) or value is None:
        return False
    try:
        return bool(_ORDERING[op](measured, value))
    except TypeError:
        return False


def matches(actual: Any, expected: Any) -> bool:
    """Check one state value against a literal or a Predicate."""
    if isinstance(expected, Predicate):
        return _check_predicate(actual, expected)
    if actual is MISSING:
        return False
    return _same_literal(actual, expected)


def condition_holds(state: Mapping[str, Any], key: str, expected: Any) -> bool:
    return matches(state.get(key, MISSING), expected)


def unsatisfied(state: Mapping[str, Any], conditions: Mapping[str, Any]) -> Dict[str, Any]:
    """The subset of conditions that do not hold in state, in declaration order."""
    return {
        key: expected
        for key, expected in conditions.items()
        if not condition_holds(state, key, expected)
    }


def is_satisfied(state: Mapping[str, Any], conditions: Mapping[str, Any]) -> bool:
    return all(condition_holds(state, k, v) for k, v in conditions.items())


def apply_effect(current: Any, effect: Any) -> Any:
    """Compute the value a key takes after an effect is applied to it."""
    if not isinstance(effect, EffectOp):
        return freeze(effect)

    op = effect.operation
    number = current if isinstance(current, (int, float)) and not isinstance(current, bool) else 0
    if op == EffectOperation.INCREMENT:
        return number + (effect.value if effect.value is not None else 1)
    if op == EffectOperation.DECREMENT:
        return number - (effect.value if effect.value is not None else 1)
    if op == EffectOperation.PUSH:
        items = tuple(current) if isinstance(current, (list, tuple)) else ()
        return items + (effect.value,)
    if op == EffectOperation.REMOVE:
        items = tuple(current) if isinstance(current, (list, tuple)) else ()
        return tuple(item for item in items if item != effect.value)
    if op == EffectOperation.TOGGLE:
        return not bool(current) if current is not MISSING else True
    raise ValueError(f"Unknown effect operation: {op}")


def apply_effects(
    state: Mapping[str, Any], effects: Mapping[str, Any]
) -> Tuple[Dict[str, Any], list]:
    """
    Merge effects into a copy of state, last writer wins per key.
    Returns the new state and the keys whose value changed.
    """
    new_state = dict(state)
    changed = []
    for key, effect in effects.items():
        current = new_state.get(key, MISSING)
        value = apply_effect(current, effect)
        if current is MISSING or not _same_literal(current, value):
            changed.append(key)
        new_state[key] = value
    return new_state, changed


def same_condition(a: Any, b: Any) -> bool:
    """True if two conditions on the same key demand the same thing."""
    if isinstance(a, Predicate) or isinstance(b, Predicate):
        return a == b
    return _same_literal(a, b)


# Outcomes of regressing a condition through an effect
ACHIEVED = "achieved"        # holds after the effect whatever came before
ADVANCED = "advanced"        # replaced by an easier condition on the prior value
KEPT = "kept"                # replaced by an equivalent condition on the prior value
CONFLICT = "conflict"        # the effect can never leave the condition true

_RAISING = (ConditionOperator.GT, ConditionOperator.GTE)
_LOWERING = (ConditionOperator.LT, ConditionOperator.LTE)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _regress_counter(delta: Any, expected: Any) -> Tuple[str, Any]:
    if isinstance(expected, Predicate):
        op = expected.operator
        if op == ConditionOperator.EXISTS:
            return ACHIEVED, None
        if op in _RAISING + _LOWERING + (ConditionOperator.NE,) and _is_number(expected.value):
            prior = Predicate(operator=op, value=expected.value - delta)
            helps = (op in _RAISING and delta > 0) or (op in _LOWERING and delta < 0)
            return (ADVANCED if helps else KEPT), prior
        return CONFLICT, None
    if _is_number(expected):
        return ADVANCED, expected - delta
    return CONFLICT, None


def _regress_push(item: Any, expected: Any) -> Tuple[str, Any]:
    if isinstance(expected, Predicate):
        op = expected.operator
        if op == ConditionOperator.EXISTS:
            return ACHIEVED, None
        if op == ConditionOperator.CONTAINS and expected.value == item:
            return ACHIEVED, None
        if op == ConditionOperator.NOT_CONTAINS:
            return (CONFLICT, None) if expected.value == item else (KEPT, expected)
        if op in _RAISING + _LOWERING and _is_number(expected.value):
            prior = Predicate(operator=op, value=expected.value - 1)
            return (ADVANCED if op in _RAISING else KEPT), prior
        return CONFLICT, None
    if isinstance(expected, (list, tuple)) and expected and expected[-1] == item:
        return ADVANCED, list(expected[:-1])
    return CONFLICT, None


def regress_condition(effect: Any, expected: Any, current: Any = MISSING) -> Tuple[str, Any]:
    """
    Compute what must hold before ``effect`` for ``expected`` to hold after it.

    Returns ``(outcome, prior_condition)``; the prior condition is None when
    the outcome is ACHIEVED or CONFLICT. Effects whose inverse cannot be
    expressed as a single condition (remove, toggle on non-literals) are
    judged against ``current``, the snapshot value.
    """
    if not isinstance(effect, EffectOp):
        return (ACHIEVED, None) if matches(freeze(effect), expected) else (CONFLICT, None)

    op = effect.operation
    if op in (EffectOperation.INCREMENT, EffectOperation.DECREMENT):
        step = effect.value if effect.value is not None else 1
        if not _is_number(step):
            return CONFLICT, None
        return _regress_counter(step if op == EffectOperation.INCREMENT else -step, expected)
    if op == EffectOperation.PUSH:
        return _regress_push(effect.value, expected)
    if op == EffectOperation.TOGGLE and isinstance(expected, bool):
        return ADVANCED, not expected
    if (
        op == EffectOperation.REMOVE
        and isinstance(expected, Predicate)
        and expected.operator == ConditionOperator.NOT_CONTAINS
        and expected.value == effect.value
    ):
        return ACHIEVED, None

    if matches(apply_effect(current, effect), expected):
        return ACHIEVED, None
    return CONFLICT, None


def conditions_key(conditions: Mapping[str, Any]) -> Tuple:
    """A hashable, order-independent identity for a condition set."""
    return tuple(
        (key, value if isinstance(value, Predicate) else freeze(value))
        for key, value in sorted(conditions.items(), key=lambda kv: kv[0])
    )


def keys_of(conditions: Iterable[str]) -> str:
    return ", ".join(sorted(conditions))
