# model.py
from __future__ import annotations

import json
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import DeserializationError


class JobStatus(IntEnum):
    """Status values a Notifier moves through during one job."""
    NEW = 0
    WAITING = 1
    STARTED = 2
    FAILING = 3
    SUCCEEDED = 4
    FAILED = 5

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


class ActionResult(NamedTuple):
    """What Action.perform() returns: unpacks as (success, exit_code)."""
    success: bool
    exit_code: int


@dataclass(frozen=True)
class StageOutcome:
    """One executed stage, as recorded by the stage walker."""
    stage_id: str
    name: str
    version: str
    success: bool
    exit_code: int


# Serialized payloads arrive either as JSON text or as an already-decoded
# mapping (e.g. a stage embedded directly in the job document).
Serialized = Union[str, Dict[str, Any]]


def _decode(payload: Any, what: str) -> Dict[str, Any]:
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DeserializationError(f"couldn't decode {what}: {e}") from e
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise DeserializationError(f"couldn't decode {what}: {e}") from e
    if not isinstance(payload, Mapping):
        raise DeserializationError(
            f"{what} must be an object, got {type(payload).__name__}"
        )
    return dict(payload)


def _validation_message(err: ValidationError) -> str:
    parts = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e["loc"]) or "<root>"
        parts.append(f"{loc}: {e['msg']}")
    return "; ".join(parts)


class SourceDescriptor(BaseModel):
    """One source entry: a mandatory `type` plus type-specific fields."""
    model_config = ConfigDict(frozen=True, extra="allow")

    type: str

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump()


class ActionDescriptor(BaseModel):
    """
    A serialized Action: the registered action name in `type`, everything
    else is handed to the action's constructor.

        {"type": "command", "cmd": "make test", "path": "%{workspace}/app"}
    """
    model_config = ConfigDict(frozen=True, extra="allow")

    type: str

    def params(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})

    @classmethod
    def load(cls, payload: Any) -> ActionDescriptor:
        data = _decode(payload, "action")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise DeserializationError(
                f"invalid action: {_validation_message(e)}"
            ) from e


class StepDefinition(BaseModel):
    """One step of a stage. The action is decoded when the step runs."""
    model_config = ConfigDict(frozen=True)

    action: Serialized


class Stage(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    version: str = "1.0.0"
    steps: List[StepDefinition] = Field(default_factory=list)
    on_success: Optional[str] = None
    on_failure: Optional[str] = None

    @classmethod
    def load(cls, payload: Any) -> Stage:
        """Decode one serialized stage. Every call builds a new value."""
        data = _decode(payload, "stage")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise DeserializationError(
                f"invalid stage: {_validation_message(e)}"
            ) from e


class JobDefinition(BaseModel):
    """
    A complete job request.

    `stages` maps stage ids to serialized stages; they are decoded lazily,
    one at a time, as the walker reaches them. Only the first entry of
    `sequence` is used as the initial stage.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    version: str = "1.0.0"
    organization: Optional[Union[int, str]] = None
    environment: Dict[str, Any] = Field(default_factory=dict)
    secrets: Dict[str, Any] = Field(default_factory=dict)
    context: Dict[str, Any] = Field(default_factory=dict)
    sources: List[SourceDescriptor] = Field(default_factory=list)
    stages: Dict[str, Serialized] = Field(default_factory=dict)
    sequence: List[str] = Field(default_factory=list)

    @property
    def initial_stage(self) -> Optional[str]:
        return self.sequence[0] if self.sequence else None

    @classmethod
    def load(cls, payload: Any) -> JobDefinition:
        data = _decode(payload, "job definition")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise DeserializationError(
                f"invalid job definition: {_validation_message(e)}"
            ) from e
