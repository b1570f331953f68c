import json
from dataclasses import dataclass
from typing import Any, Union

from amaru_beacon.services.errors import MalformedStatus

# Wire key -> (attribute, expected type)
_RAW_STATUS_FIELDS: list[tuple[str, str, type]] = [
    ("slot", "slot", int),
    ("blockHash", "block_hash", str),
    ("blockNumber", "block_number", int),
    ("epoch", "epoch", int),
    ("isSyncing", "is_syncing", bool),
    ("status", "status", str),
]


@dataclass(frozen=True)
class TipInfo:
    slot: int
    block_hash: str
    block_number: int
    epoch: int
    is_syncing: bool


@dataclass(frozen=True)
class RawStatus:
    """One unprocessed status report from the node, as returned by a single poll."""

    slot: int
    block_hash: str
    block_number: int
    epoch: int
    is_syncing: bool
    status: str

    @classmethod
    def from_json(cls, payload: str | bytes) -> "RawStatus":
        try:
            data = json.loads(payload)
        except (TypeError, ValueError) as exc:
            raise MalformedStatus(f"invalid JSON: {exc}") from exc
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Any) -> "RawStatus":
        if not isinstance(data, dict):
            raise MalformedStatus(f"expected a JSON object, got {type(data).__name__}")
        values: dict[str, Any] = {}
        for key, attr, expected in _RAW_STATUS_FIELDS:
            if key not in data:
                raise MalformedStatus(f"missing field '{key}'")
            value = data[key]
            # bool is an int subclass; reject it for numeric fields
            if expected is int and (isinstance(value, bool) or not isinstance(value, int)):
                raise MalformedStatus(f"field '{key}' must be an integer, got {value!r}")
            if expected is not int and not isinstance(value, expected):
                raise MalformedStatus(
                    f"field '{key}' must be {expected.__name__}, got {type(value).__name__}"
                )
            if expected is int and value < 0:
                raise MalformedStatus(f"field '{key}' must not be negative, got {value}")
            values[attr] = value
        return cls(**values)

    def tip(self) -> TipInfo:
        return TipInfo(
            slot=self.slot,
            block_hash=self.block_hash,
            block_number=self.block_number,
            epoch=self.epoch,
            is_syncing=self.is_syncing,
        )


@dataclass(frozen=True)
class Idle:
    """No poll has completed yet."""


@dataclass(frozen=True)
class Bootstrapping:
    message: str


@dataclass(frozen=True)
class Ready:
    tip: TipInfo


@dataclass(frozen=True)
class Failed:
    message: str


NodeState = Union[Idle, Bootstrapping, Ready, Failed]

IDLE = Idle()
