"""
DocShelf Error Hierarchy — Structured exceptions for store and query failures.

All errors carry their context as JSON-serializable data so they can be
written to the activity log or returned to a UI collaborator unchanged.

Hierarchy:
    DocShelfError
    ├── DocShelfValidationError  — Bad input shape, file type or size
    ├── DocShelfNotFoundError    — Referenced entity id does not exist
    ├── DocShelfUnknownUserError — User outside the known user set
    ├── DocShelfInvariantError   — Store invariant broken (e.g. folder cycle)
    ├── DocShelfSecurityError    — Permission check failed
    ├── DocShelfReadError        — Content reader failed during upload
    └── DocShelfConfigError      — Invalid docshelf.yaml
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class DocShelfError(Exception):
    """
    Base error for all DocShelf failures.
    Every context value is serializable, so errors can go straight into the activity log.
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.object_ref: Optional[str] = context.get("object_ref")
        self.object_type: Optional[str] = context.get("object_type")
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to a JSON-compatible dict."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "object_ref": self.object_ref,
            "object_type": self.object_type,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k not in ("object_ref", "object_type")
            },
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.object_type:
            parts.append(f"object_type={self.object_type}")
        if self.object_ref:
            parts.append(f"object_ref={self.object_ref}")
        return " | ".join(parts)


class DocShelfValidationError(DocShelfError):
    """
    Input validation failed (Pydantic, file type, size ceiling, blank names).
    Includes field-level error details when Pydantic produced them.
    """

    def __init__(self, message: str, **context: Any):
        self.validation_errors: Optional[list] = context.get("validation_errors")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["validation_errors"] = self.validation_errors
        return d


class DocShelfNotFoundError(DocShelfError):
    """A document, folder, tag, annotation or version id does not exist."""

    def __init__(self, message: str, **context: Any):
        self.object_id: Optional[str] = context.get("object_id")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["object_id"] = self.object_id
        return d


class DocShelfUnknownUserError(DocShelfError):
    """Permission change targeted a user outside the known user set."""

    def __init__(self, message: str, **context: Any):
        self.user_id: Optional[str] = context.get("user_id")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["user_id"] = self.user_id
        return d


class DocShelfInvariantError(DocShelfError):
    """
    A store invariant does not hold. The operation is aborted and state is
    left unchanged.
    """

    def __init__(self, message: str, **context: Any):
        self.invariant: Optional[str] = context.get("invariant")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["invariant"] = self.invariant
        return d


class DocShelfSecurityError(DocShelfError):
    """Access denied on a document."""

    def __init__(self, message: str, **context: Any):
        self.user_id: Optional[str] = context.get("user_id")
        self.required_permission: Optional[str] = context.get("required_permission")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["user_id"] = self.user_id
        d["required_permission"] = self.required_permission
        return d


class DocShelfReadError(DocShelfError):
    """Reading an uploaded file's bytes failed."""
    pass


class DocShelfConfigError(DocShelfError):
    """Configuration error — invalid docshelf.yaml."""
    pass
