"""
Data Models for Kemono Client

This module contains data classes and models used throughout the application:
the persisted Favorite and Session records, the transient Post and PostFile
records returned by the API, and the Result wrapper every operation returns.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Mapping, Optional, TypeVar

from config import settings
from utils.exceptions import KemonoClientError, UnexpectedShapeError

T = TypeVar("T")

_IMAGE_EXTENSIONS = re.compile(r"\.(jpg|jpeg|png|gif|webp)$")
_VIDEO_EXTENSIONS = re.compile(r"\.(mp4|webm|mov)$")


@dataclass(frozen=True)
class Favorite:
    """A followed creator with cached display metadata."""
    id: str
    service: str
    name: str
    icon: str = ""
    updated: str = settings.EPOCH_TIMESTAMP

    @property
    def key(self) -> tuple:
        """The (id, service) pair that identifies a favorite."""
        return (self.id, self.service)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], default_updated: Optional[str] = None) -> "Favorite":
        return cls(
            id=str(data["id"]),
            service=str(data["service"]),
            name=str(data.get("name") or ""),
            icon=str(data.get("icon") or ""),
            updated=str(data.get("updated") or default_updated or settings.EPOCH_TIMESTAMP),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "service": self.service,
            "name": self.name,
            "icon": self.icon,
            "updated": self.updated,
        }


@dataclass(frozen=True)
class PostFile:
    """Reference to a remote file attached to a post."""
    name: str
    path: str

    @property
    def url(self) -> str:
        return f"{settings.KEMONO_BASE_URL}{self.path}"

    @property
    def kind(self) -> str:
        """'image', 'video' or 'download', decided by file extension."""
        file_name = (self.name or self.path).lower()
        if _IMAGE_EXTENSIONS.search(file_name):
            return "image"
        if _VIDEO_EXTENSIONS.search(file_name):
            return "video"
        return "download"

    @classmethod
    def from_api(cls, data: Any) -> Optional["PostFile"]:
        if not isinstance(data, Mapping) or not data.get("path"):
            return None
        return cls(name=str(data.get("name") or ""), path=str(data["path"]))


def is_post_payload(data: Any) -> bool:
    """
    Check a payload against the minimal post contract.

    Args:
        data: A decoded JSON value from the API.

    Returns:
        bool: True if the payload is a mapping carrying 'id' and 'title'.
    """
    return isinstance(data, Mapping) and "id" in data and "title" in data


@dataclass(frozen=True)
class Post:
    """A creator post as returned by the API. Never persisted."""
    id: str
    title: str
    content: str = ""
    published: str = ""
    file: Optional[PostFile] = None
    attachments: List[PostFile] = field(default_factory=list)
    user: Optional[str] = None
    service: Optional[str] = None

    @classmethod
    def from_api(cls, data: Any) -> "Post":
        """
        Build a Post from an API payload.

        Raises:
            UnexpectedShapeError: If the payload does not satisfy the post contract.
        """
        if not is_post_payload(data):
            raise UnexpectedShapeError("The API returned data that does not look like a post.")
        attachments = [
            attachment for attachment in (PostFile.from_api(a) for a in data.get("attachments") or [])
            if attachment is not None
        ]
        user = data.get("user")
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            content=str(data.get("content") or ""),
            published=str(data.get("published") or ""),
            file=PostFile.from_api(data.get("file")),
            attachments=attachments,
            user=str(user) if user is not None and not isinstance(user, Mapping) else None,
            service=data.get("service"),
        )


@dataclass(frozen=True)
class Session:
    """The authenticated identity: a display name and the session cookie."""
    username: str
    token: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Session":
        # Older saves used 'cookie' for the token
        token = data.get("token") or data.get("cookie")
        if not data.get("username") or not token:
            raise ValueError("Persisted session is missing 'username' or 'token'")
        return cls(username=str(data["username"]), token=str(token))

    def to_dict(self) -> Dict[str, str]:
        return {"username": self.username, "token": self.token}


@dataclass
class Result(Generic[T]):
    """
    Tagged success/failure outcome of an operation.

    Attributes:
        success: Whether the operation succeeded.
        data: The payload on success.
        error: The taxonomy error on failure.
        message: Informational text for benign outcomes.
        warnings: Non-fatal problems, e.g. partial failures of a fan-out.
    """
    success: bool
    data: Optional[T] = None
    error: Optional[KemonoClientError] = None
    message: Optional[str] = None
    warnings: List[KemonoClientError] = field(default_factory=list)

    @classmethod
    def ok(cls, data: Optional[T] = None, message: Optional[str] = None,
           warnings: Optional[List[KemonoClientError]] = None) -> "Result[T]":
        return cls(success=True, data=data, message=message, warnings=list(warnings or []))

    @classmethod
    def fail(cls, error: KemonoClientError) -> "Result[T]":
        return cls(success=False, error=error)

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None

    def unwrap(self) -> T:
        """Return the data, or raise the stored error."""
        if not self.success:
            raise self.error
        return self.data
