"""Request and result models for notification dispatch"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from notice_mcp.exceptions import ValidationError


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class NotificationRequest(BaseModel):
    """A single "send a notification" request."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str
    message: str
    backend: Optional[str] = None
    config: Optional[Dict[str, Any]] = None

    @field_validator("title", "message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be a non-empty string")
        return value

    @field_validator("backend")
    @classmethod
    def _backend_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("must be a non-empty string when given")
        return value

    @classmethod
    def from_arguments(cls, arguments: Any) -> "NotificationRequest":
        """Validate raw tool arguments, raising our ValidationError on bad shape."""
        if not isinstance(arguments, Mapping):
            raise ValidationError("arguments must be an object")
        try:
            return cls.model_validate(dict(arguments))
        except PydanticValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}"
                for err in e.errors()
            )
            raise ValidationError(f"Invalid notification request: {problems}") from e


class BackendOutcome(BaseModel):
    """Result of one backend invocation. Created once, never mutated."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: bool
    backend: str
    timestamp: str = Field(default_factory=utc_timestamp)
    message_id: Optional[str] = Field(default=None, alias="messageId")
    error: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def failure(cls, backend: str, error: str) -> "BackendOutcome":
        return cls(success=False, backend=backend, error=error or "Unknown error")

    @classmethod
    def from_partial(cls, backend: str, partial: Mapping[str, Any]) -> "BackendOutcome":
        """Complete a backend's partial result.

        ``success``, ``backend`` and ``timestamp`` are always set here; keys the
        model does not know are folded into ``metadata``.
        """
        message_id = partial.get("message_id", partial.get("messageId"))
        metadata = dict(partial.get("metadata") or {})
        reserved = {"success", "backend", "timestamp", "message_id", "messageId", "metadata", "error"}
        for key, value in partial.items():
            if key not in reserved:
                metadata[key] = value
        return cls(
            success=True,
            backend=backend,
            message_id=message_id,
            metadata=metadata or None,
        )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class DispatchResult(BaseModel):
    """Aggregated outcome of one dispatch."""

    model_config = ConfigDict(frozen=True)

    success: bool
    results: List[BackendOutcome] = Field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: List[BackendOutcome]) -> "DispatchResult":
        return cls(success=any(o.success for o in outcomes), results=outcomes)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "results": [outcome.to_wire() for outcome in self.results],
        }
