"""Pydantic configuration models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from asmlens.config.defaults import (
    DEFAULT_CONTEXT,
    DEFAULT_MAX_MATCHES,
    DEFAULT_TEXT_SIZE,
    DEFAULT_WORKERS,
)


class AnalysisConfig(BaseModel):
    context: int = Field(default=DEFAULT_CONTEXT, ge=0)
    max_matches: int = DEFAULT_MAX_MATCHES
    workers: int = Field(default=DEFAULT_WORKERS, ge=1)


class SourcesConfig(BaseModel):
    # Tried in order when a path recorded in the debug info does not exist.
    roots: list[str] = Field(default_factory=list)


class ViewConfig(BaseModel):
    text_size: int = Field(default=DEFAULT_TEXT_SIZE, gt=0)
    font: str | None = None


class LoggingConfig(BaseModel):
    level: str = "WARNING"
    json_output: bool = False


class AsmLensConfig(BaseModel):
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    view: ViewConfig = Field(default_factory=ViewConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
