"""
DocShelf Document Permissions — ordered access levels resolved per document.

Resolution order:
    1. The document owner → admin, regardless of the recorded entry
    2. A recorded access-list entry → its level
    3. No entry → none

A check passes when the effective level ranks at or above the required one
under none < view < edit < download < admin.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from docshelf.documents.models import Document, PermissionLevel
from docshelf.engine.errors import DocShelfSecurityError
from docshelf.engine.logging import ActivityLog, log_security_event

logger = logging.getLogger("docshelf.security.permissions")

# Levels each level implies (higher includes lower)
PERMISSION_HIERARCHY = {
    level: {lower for lower in PermissionLevel if lower.rank <= level.rank}
    for level in PermissionLevel
}


class AccessResolver:
    """
    Resolves a user's effective permission level on a document.

    Denials raised by require() are recorded as security events when an
    activity log is supplied.
    """

    def __init__(self, activity: Optional[ActivityLog] = None):
        self._activity = activity

    def effective_level(self, document: Document, user_id: Optional[str]) -> PermissionLevel:
        if user_id is None:
            return PermissionLevel.NONE
        if user_id == document.owner_id:
            return PermissionLevel.ADMIN
        entry = document.access_entry(user_id)
        return entry.permission_level if entry else PermissionLevel.NONE

    def check(
        self,
        document: Document,
        user_id: Optional[str],
        required: Union[PermissionLevel, str],
    ) -> bool:
        """
        Check if a user holds at least the required level on a document.

        Raises DocShelfValidationError for unknown level names.
        """
        required = PermissionLevel.parse(required)
        return self.effective_level(document, user_id).at_least(required)

    def require(
        self,
        document: Document,
        user_id: Optional[str],
        required: Union[PermissionLevel, str],
    ) -> PermissionLevel:
        """Like check(), raising DocShelfSecurityError on denial. Returns the effective level."""
        required = PermissionLevel.parse(required)
        level = self.effective_level(document, user_id)
        if level.at_least(required):
            return level

        logger.warning(
            f"Access denied: user={user_id} document={document.id} "
            f"has={level.value} needs={required.value}"
        )
        if self._activity is not None:
            self._activity.record(log_security_event(
                "access_denied", document.id, user_id, required.value,
                f"{user_id} needs {required.value} access to \"{document.name}\"",
                granted_level=level.value,
            ))
        raise DocShelfSecurityError(
            f"Access denied: '{required.value}' permission required on '{document.name}'",
            object_type="document",
            object_ref=document.id,
            user_id=user_id,
            required_permission=required.value,
        )

    def grantable_levels(self) -> list:
        """Levels offered by the sharing UI (none is expressed by removing access)."""
        return [level for level in PermissionLevel if level is not PermissionLevel.NONE]
