"""
Post Pydantic schemas for input validation.

This module contains the schemas validated before any store call is made:
post creation with media, post edits and comments. Limits come from
``MomentsSettings`` passed through the pydantic validation context, falling
back to the defaults when no context is given.
"""

from typing import Any, List, Optional, Type, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from ..exceptions import SchemaValidationException
from ..models.post import PostVisibility
from ..utils.config import MomentsSettings
from ..utils.validation import is_supported_content_type, sanitize_text

SchemaT = TypeVar("SchemaT", bound=BaseModel)

_DEFAULT_SETTINGS = MomentsSettings()


def _settings_from(info: ValidationInfo) -> MomentsSettings:
    """Settings carried in the validation context, or the defaults."""
    context = info.context or {}
    settings = context.get("settings")
    return settings if isinstance(settings, MomentsSettings) else _DEFAULT_SETTINGS


def parse_with_settings(
    schema: Type[SchemaT], data: Any, settings: Optional[MomentsSettings] = None
) -> SchemaT:
    """
    Validate ``data`` against ``schema`` using the given limits.

    ``data`` may be a mapping or an existing schema instance, which is
    re-validated so limits configured at runtime are always applied.

    Raises:
        SchemaValidationException: If validation fails
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(
            data, context={"settings": settings or _DEFAULT_SETTINGS}
        )
    except ValidationError as e:
        raise SchemaValidationException.from_pydantic(e, schema_name=schema.__name__)


class MediaFile(BaseModel):
    """A file picked for upload. The bytes go to the object store, not the database."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    filename: str = Field(..., description="Original file name", min_length=1)
    content_type: str = Field(..., description="MIME type reported by the client")
    size: int = Field(..., description="Size in bytes", ge=0)
    data: Any = Field(
        None, description="File payload handed to the uploader", repr=False
    )

    @field_validator("content_type")
    @classmethod
    def validate_content_type(cls, v: str) -> str:
        """Only images and videos can be attached."""
        if not is_supported_content_type(v):
            raise ValueError("Only image and video files can be attached")
        return v.lower()

    @field_validator("size")
    @classmethod
    def validate_size(cls, v: int, info: ValidationInfo) -> int:
        """Validate per-file size limit."""
        limit = _settings_from(info).max_media_bytes
        if v > limit:
            raise ValueError(f"Max {limit // (1024 * 1024)}MB per file")
        return v


class PostCreate(BaseModel):
    """Schema for publishing a post."""

    content: Optional[str] = Field(None, description="Post text")
    patient_id: Optional[int] = Field(None, description="Pet the post is about")
    visibility: PostVisibility = Field(
        PostVisibility.OWNERS_ONLY, description="Who may read the post"
    )
    media: List[MediaFile] = Field(default_factory=list, description="Files to attach")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        """Validate length, then trim. Blank text becomes ``None``."""
        if v is None:
            return v
        limit = _settings_from(info).max_post_length
        if len(v) > limit:
            raise ValueError(f"Max {limit} characters")
        return sanitize_text(v) or None

    @field_validator("media")
    @classmethod
    def validate_media(
        cls, v: List[MediaFile], info: ValidationInfo
    ) -> List[MediaFile]:
        """Validate the number of attached files."""
        limit = _settings_from(info).max_media_files
        if len(v) > limit:
            raise ValueError(f"Max {limit} files per post")
        return v

    @model_validator(mode="after")
    def validate_has_body(self) -> "PostCreate":
        """A post needs text or at least one file."""
        if not self.content and not self.media:
            raise ValueError("Add text or images")
        return self


class PostUpdate(BaseModel):
    """
    Schema for editing a post. Only the author may apply it.

    Only fields that were explicitly set are written. Setting ``content`` to
    blank text or ``None`` clears it.
    """

    content: Optional[str] = Field(None, description="New post text")
    visibility: Optional[PostVisibility] = Field(None, description="New visibility")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        """Validate length, then trim. Blank text becomes ``None``."""
        if v is None:
            return v
        limit = _settings_from(info).max_post_length
        if len(v) > limit:
            raise ValueError(f"Max {limit} characters")
        return sanitize_text(v) or None

    @field_validator("visibility")
    @classmethod
    def validate_visibility(
        cls, v: Optional[PostVisibility]
    ) -> Optional[PostVisibility]:
        """Visibility can be changed but not cleared."""
        if v is None:
            raise ValueError("Visibility cannot be empty")
        return v

    @model_validator(mode="after")
    def validate_at_least_one_field(self) -> "PostUpdate":
        """Ensure at least one field is provided for update."""
        if not self.model_fields_set & {"content", "visibility"}:
            raise ValueError("At least one field must be provided for update")
        return self

    def changes(self) -> dict:
        """Column values to write."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class CommentCreate(BaseModel):
    """Schema for a new comment."""

    content: str = Field(..., description="Comment text")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str, info: ValidationInfo) -> str:
        """Reject blank and over-long comments, then trim."""
        limit = _settings_from(info).max_comment_length
        if len(v) > limit:
            raise ValueError(f"Max {limit} characters")
        text = sanitize_text(v)
        if not text:
            raise ValueError("Comment cannot be empty")
        return text
