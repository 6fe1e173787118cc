"""Redirect template and template asset data models.

Templates are HTML pages (error, password challenge, interstitial) whose
content is either stored inline or as a main file within an asset prefix.
Assets are the files of a file-based template, stored as a database blob
or as an object-store key.
"""

from datetime import datetime
from enum import IntEnum
from typing import Optional

from sqlalchemy import Column, LargeBinary, UniqueConstraint
from sqlmodel import Field, SQLModel

from linkgate.models.timestamps import created_at_field


class TemplateType(IntEnum):
    """Informational template category."""
    GENERAL = 0
    PASSWORD = 1
    ERROR = 2
    NOT_FOUND = 3


class TemplateContentType(IntEnum):
    """Where the content of a template lives."""
    INLINE = 0
    FILE = 1


class AssetStorageType(IntEnum):
    """Where the bytes of an asset live."""
    DATABASE = 0
    OBJECT_STORE = 1


class RedirectTemplate(SQLModel, table=True):
    """Template model for error, password and interstitial pages."""

    __tablename__ = "redirect_templates"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    template_type: int = Field(default=TemplateType.GENERAL)
    is_active: bool = Field(default=True)
    content_type: int = Field(
        default=TemplateContentType.INLINE,
        description="0 = inline html_content, 1 = main_file within asset_prefix",
    )
    html_content: Optional[str] = Field(default=None)
    asset_prefix: Optional[str] = Field(default=None, max_length=64)
    main_file: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = created_at_field()

    @property
    def is_file_based(self) -> bool:
        return self.content_type == TemplateContentType.FILE


class TemplateAsset(SQLModel, table=True):
    """A single file belonging to an asset prefix."""

    __tablename__ = "template_assets"
    __table_args__ = (
        UniqueConstraint("asset_prefix", "filename", name="uq_template_assets_prefix_filename"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    asset_prefix: str = Field(max_length=64, index=True)
    filename: str = Field(max_length=255)
    storage_type: int = Field(
        default=AssetStorageType.DATABASE,
        description="0 = content column, 1 = object_key in the object store",
    )
    content: Optional[bytes] = Field(default=None, sa_column=Column(LargeBinary, nullable=True))
    object_key: Optional[str] = Field(default=None, max_length=512)
    content_type: Optional[str] = Field(default=None, max_length=255)
    size: Optional[int] = Field(default=None)
    is_public: bool = Field(default=True)
    created_at: datetime = created_at_field()
