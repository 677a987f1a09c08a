"""
Diff a desired set of rows against the stored ones, keyed by a natural key,
and say what to insert, update and delete. Running the plan twice is a no-op.
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, Hashable, List, Mapping, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
D = TypeVar("D")
A = TypeVar("A")


@dataclass
class Plan(Generic[K, D, A]):
    insert: List[Tuple[K, D]] = field(default_factory=list)
    update: List[Tuple[A, D]] = field(default_factory=list)
    delete: List[A] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.insert or self.update or self.delete)


def plan(
    desired: Mapping[K, D],
    actual: Mapping[K, A],
    changed: Callable[[A, D], bool],
) -> Plan[K, D, A]:
    result: Plan[K, D, A] = Plan()
    for key, want in desired.items():
        have = actual.get(key)
        if have is None:
            result.insert.append((key, want))
        elif changed(have, want):
            result.update.append((have, want))
    result.delete = [have for key, have in actual.items() if key not in desired]
    return result


def fields_differ(*names: str) -> Callable[[object, Dict], bool]:
    """``changed`` callback comparing model attributes to a dict of wanted values."""
    def changed(have: object, want: Dict) -> bool:
        return any(getattr(have, name, None) != want.get(name) for name in names)
    return changed
