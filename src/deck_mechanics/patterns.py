from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from .condition_mode import ConditionMode


@dataclass(frozen=True)
class Condition:
    """One clause of a pattern: `count` cards from `candidate_kinds` under `mode`."""

    mode: ConditionMode
    count: int
    candidate_kinds: Tuple[str, ...]
    valid: bool = True

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Condition":
        """Create from a condition record ({uids, count, mode, invalid})."""
        try:
            mode = ConditionMode(record["mode"])
        except KeyError:
            raise ValueError(f"Condition record is missing 'mode': {record}")
        except ValueError:
            raise ValueError(
                f"Invalid condition mode: {record['mode']}. "
                f"Valid: {[m.value for m in ConditionMode]}"
            )
        count = int(record.get("count", 0))
        if count < 0:
            raise ValueError(f"Condition count must be non-negative, got {count}")
        return cls(
            mode=mode,
            count=count,
            candidate_kinds=tuple(record.get("uids") or ()),
            valid=not bool(record.get("invalid", False)),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "uids": list(self.candidate_kinds),
            "count": self.count,
            "mode": self.mode.value,
            "invalid": not self.valid,
        }


@dataclass(frozen=True)
class Label:
    uid: str
    name: str = ""
    memo: str = ""

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Label":
        if "uid" not in record:
            raise ValueError(f"Label record is missing 'uid': {record}")
        return cls(
            uid=str(record["uid"]),
            name=str(record.get("name", "")),
            memo=str(record.get("memo", "")),
        )


@dataclass(frozen=True)
class Pattern:
    """Ordered conditions joined by AND.

    `priority` (lower wins) only breaks ties when the simulated prosperity
    effect chooses which revealed card to keep.
    """

    uid: str
    name: str
    conditions: Tuple[Condition, ...]
    label_uids: Tuple[str, ...] = ()
    priority: int = 0
    active: bool = True
    memo: str = ""

    @property
    def is_valid(self) -> bool:
        return all(c.valid for c in self.conditions)

    def conditions_by_mode(self, mode: ConditionMode) -> List[Condition]:
        return [c for c in self.conditions if c.mode == mode]

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Pattern":
        """Create from a pattern record; UI-only keys such as `expanded` are ignored."""
        if "uid" not in record:
            raise ValueError(f"Pattern record is missing 'uid': {record}")
        label_uids = tuple(
            str(ref["uid"])
            for ref in (record.get("labels") or [])
            if ref.get("uid")
        )
        return cls(
            uid=str(record["uid"]),
            name=str(record.get("name", "")),
            conditions=tuple(
                Condition.from_record(c) for c in (record.get("conditions") or [])
            ),
            label_uids=label_uids,
            priority=int(record.get("priority", 0)),
            active=bool(record.get("active", True)),
            memo=str(record.get("memo", "")),
        )


def sort_by_priority(patterns: List[Pattern]) -> List[Pattern]:
    """Active patterns by ascending priority, ties kept in list order."""
    return sorted((p for p in patterns if p.active), key=lambda p: p.priority)
