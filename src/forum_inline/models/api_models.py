"""
API request and response models for FastAPI endpoints.

The batch service endpoint receives a list of ServiceCall objects; each call's
``args`` are validated against the argument model of its method.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class ServiceCall(BaseModel):
    """One remote procedure call of a batch."""

    index: int = Field(default=0, description="Position of the call in the batch")
    methodname: str = Field(description="Remote method, e.g. mod_forum_add_discussion_post")
    args: Dict[str, Any] = Field(default_factory=dict, description="Method arguments")


class ServiceError(BaseModel):
    errorcode: str = Field(description="Machine readable error code")
    message: str = Field(description="Human readable message")


class ServiceResponse(BaseModel):
    """Result of one call: either data or an exception."""

    error: bool = Field(description="Whether the call failed")
    data: Optional[Any] = Field(None, description="Method result")
    exception: Optional[ServiceError] = Field(None, description="Error details if failed")


class PostOption(BaseModel):
    name: str
    value: Union[str, int, bool]


class AddDiscussionPostArgs(BaseModel):
    postid: int = Field(description="Parent post id")
    subject: str
    message: str
    options: List[PostOption] = Field(default_factory=list)


class UpdateDiscussionPostArgs(BaseModel):
    postid: int = Field(description="Id of the post to update")
    subject: str
    message: str
    options: List[PostOption] = Field(default_factory=list)


class DeleteDraftAreaArgs(BaseModel):
    draftitemid: int = Field(gt=0, description="Draft item id of the acting user")


class RenderForumDiscussionArgs(BaseModel):
    postid: int = Field(description="Any post of the discussion")


class GetPostInlineEditorArgs(BaseModel):
    postid: int
    discussionid: int
    draftideditor: int = Field(default=0, description="Draft item id of the editor, 0 allocates one")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service status", examples=["healthy"])
    version: str = Field(description="API version", examples=["1.0.0"])
    uptime_seconds: float = Field(description="Service uptime")
    database: str = Field(description="Database reachability", examples=["ok", "unreachable"])
    features: Dict[str, bool] = Field(description="Inline forum features currently enabled")


class VersionResponse(BaseModel):
    """Version information response."""

    api_version: str = Field(description="API version")
    components: Dict[str, str] = Field(description="Component versions")
