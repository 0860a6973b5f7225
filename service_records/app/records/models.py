"""
Record data models for the Records Service.
"""

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel

Document = Dict[str, Any]


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


def _finite_float(text: str) -> float:
    value = float(text)
    if math.isinf(value):
        raise ValueError(f"Number out of range: {text}")
    return value


def loads_strict(text: Union[str, bytes]) -> Any:
    """``json.loads`` that rejects ``NaN``, ``Infinity`` and out-of-range numbers."""
    return json.loads(text, parse_constant=_reject_constant, parse_float=_finite_float)


class Existence(str, Enum):
    """Outcome of probing the durable store for the document."""
    EXISTS = "exists"
    ABSENT = "absent"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ExistenceCheck:
    """Existence of the document, with the failure cause when it is unknown."""
    state: Existence
    cause: Optional[str] = None

    @property
    def absent(self) -> bool:
        return self.state is Existence.ABSENT

    @classmethod
    def exists(cls) -> "ExistenceCheck":
        return cls(Existence.EXISTS)

    @classmethod
    def missing(cls) -> "ExistenceCheck":
        return cls(Existence.ABSENT)

    @classmethod
    def unknown(cls, cause: str) -> "ExistenceCheck":
        return cls(Existence.UNKNOWN, cause)


class MessageResponse(BaseModel):
    """Plain acknowledgement body."""
    message: str


class ServiceInfoResponse(BaseModel):
    """Root endpoint body."""
    service: str
    message: str
    version: str
    capabilities: list
