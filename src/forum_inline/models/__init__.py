"""
Pydantic models for the HTTP surface.
"""

from .api_models import (
    AddDiscussionPostArgs,
    GetPostInlineEditorArgs,
    HealthResponse,
    PostOption,
    RenderForumDiscussionArgs,
    ServiceCall,
    ServiceError,
    ServiceResponse,
    UpdateDiscussionPostArgs,
    VersionResponse,
)

__all__ = [
    "AddDiscussionPostArgs",
    "GetPostInlineEditorArgs",
    "HealthResponse",
    "PostOption",
    "RenderForumDiscussionArgs",
    "ServiceCall",
    "ServiceError",
    "ServiceResponse",
    "UpdateDiscussionPostArgs",
    "VersionResponse",
]
