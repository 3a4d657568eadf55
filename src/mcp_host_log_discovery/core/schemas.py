"""Output schemas handed to configuration persistence.

These are pydantic models so collaborators (and MCP clients) get a JSON schema
and validated payloads.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from .models import LogType


class CustomParserConfig(BaseModel):
    regex: str = Field(default="", description="Regular expression applied to each line.")
    groups: dict[str, int] = Field(
        default_factory=dict,
        description="Field name -> capture group index (timestamp, level, message, ...).",
    )
    level_mapping: dict[str, str] = Field(
        default_factory=dict,
        description="Raw level text -> error|warning|info|debug.",
    )


class SystemBaseFile(BaseModel):
    path: str = Field(description="Canonical (rotation-stripped) host path.")
    log_type: LogType
    enabled: bool = True
    validated: bool = Field(description="Whether the dialect parser recognised a sample line.")
    members: list[str] = Field(default_factory=list, description="Rotated/compressed siblings.")


class AutoDetectedFile(BaseModel):
    path: str
    log_type: LogType
    parser_type: str = Field(description="Parser or pattern family that won detection.")
    pattern_name: str
    confidence: int = Field(ge=0, le=100)
    validated: bool = Field(description="Whether a second, larger sample confirmed the format.")
    enabled: bool = False
    members: list[str] = Field(default_factory=list)


class CustomFile(BaseModel):
    path: str
    enabled: bool = False
    confidence: int = Field(default=0, ge=0, le=100, description="Best score seen, if any.")
    custom_parser_config: CustomParserConfig = Field(default_factory=CustomParserConfig)
    members: list[str] = Field(default_factory=list)


class FailedFile(BaseModel):
    path: str
    reason: str


class ClassificationResult(BaseModel):
    system_base_files: list[SystemBaseFile] = Field(default_factory=list)
    auto_detected_files: list[AutoDetectedFile] = Field(default_factory=list)
    custom_files: list[CustomFile] = Field(default_factory=list)
    failed_files: list[FailedFile] = Field(default_factory=list)
