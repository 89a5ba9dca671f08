"""Shared pydantic plumbing for the document schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError


class Document(BaseModel):
    """Base for every schema model. Unknown keys are tolerated and kept."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


def issues_from(error: ValidationError) -> list[dict[str, Any]]:
    """Flatten a pydantic ValidationError into plain, JSON-safe issue dicts."""
    return [
        {
            "path": ".".join(str(part) for part in issue.get("loc", ())),
            "type": issue.get("type"),
            "msg":  issue.get("msg"),
        }
        for issue in error.errors()
    ]
