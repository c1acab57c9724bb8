# File: wpstudio/api/schemas/wordpress.py
# Purpose: Pydantic schemas for the WordPress taxonomy and token endpoints
from pydantic import BaseModel, Field
from typing import Optional


class CategoryCreatePayload(BaseModel):
    """Request schema for creating a category"""
    name: str = Field(..., min_length=1, max_length=200)
    slug: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    parent: Optional[int] = Field(None, ge=0)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Release notes",
                "slug": "release-notes",
                "parent": 0
            }
        }


class CategoryUpdatePayload(BaseModel):
    """Request schema for updating a category; omitted or blank fields stay unchanged"""
    name: Optional[str] = Field(None, max_length=200)
    slug: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    parent: Optional[int] = Field(None, ge=0)


class TagCreatePayload(BaseModel):
    """Request schema for creating a tag"""
    name: str = Field(..., min_length=1, max_length=200)
    slug: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None


class TagUpdatePayload(BaseModel):
    """Request schema for updating a tag"""
    name: Optional[str] = Field(None, max_length=200)
    slug: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None


class TokenRequest(BaseModel):
    """Credentials exchanged for a WordPress JWT"""
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
