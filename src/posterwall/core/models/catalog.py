"""Metadata catalog data models."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CatalogCandidate(BaseModel):
    """A search hit returned by the catalog."""

    title: str = Field(..., description="Title as known by the catalog")
    year: Optional[int] = Field(None, description="Release or first air year")
    popularity: float = Field(default=0.0, description="Catalog popularity score")
    external_id: str = Field(..., description="Catalog identifier")
    original_title: Optional[str] = Field(None, description="Original-language title")

    model_config = ConfigDict(frozen=True)


class CatalogDetails(BaseModel):
    """Artwork and overview of a catalog item."""

    poster_url: Optional[str] = Field(None, description="Absolute poster URL")
    synopsis: Optional[str] = Field(None, description="Plot overview")
    backdrop_url: Optional[str] = Field(None, description="Absolute backdrop URL")
    genres: List[str] = Field(default_factory=list, description="Genre names")
    rating: Optional[float] = Field(None, ge=0.0, le=10.0, description="Average user rating")

    model_config = ConfigDict(frozen=True)


class ResolvedMetadata(BaseModel):
    """Successful metadata resolution of a media guess."""

    poster_url: Optional[str] = Field(None, description="Absolute poster URL")
    synopsis: Optional[str] = Field(None, description="Plot overview")
    backdrop_url: Optional[str] = Field(None, description="Absolute backdrop URL")
    genres: List[str] = Field(default_factory=list, description="Genre names")
    rating: Optional[float] = Field(None, ge=0.0, le=10.0, description="Average user rating")
    canonical_title: str = Field(..., description="Title as known by the catalog")
    external_id: str = Field(..., description="Catalog identifier")
    year: Optional[int] = Field(None, description="Catalog year")
    similarity: float = Field(default=0.0, ge=0.0, le=1.0, description="Title similarity")

    model_config = ConfigDict(frozen=True)
