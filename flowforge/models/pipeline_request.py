"""
Pipeline Request Model
======================
Pydantic model for one CSV row: which GitLab project to run, on which
branch, with which variables.

Fields:
    app_name          — display name used in logs and reports
    project_id        — numeric GitLab project id (kept as a string)
    credential        — access token, never rendered in repr or logs
    branch            — ref to run the pipeline on, "main" when blank
    variables_string  — raw variable column, e.g. "ENV=prod:DEBUG=false"

The parsed mapping is derived from variables_string on access, so the two
can never disagree.
"""
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, SecretStr, ValidationInfo, field_validator

from flowforge.core.config import DEFAULT_BRANCH
from flowforge.parser.variables import decode_variables


class PipelineRequest(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    app_name: str
    project_id: str
    credential: SecretStr
    branch: str = DEFAULT_BRANCH
    variables_string: str = ""

    @field_validator("app_name", "project_id")
    @classmethod
    def _required(cls, value: str, info: ValidationInfo) -> str:
        if not value:
            raise ValueError(f"{info.field_name} is required")
        return value

    @field_validator("project_id")
    @classmethod
    def _numeric_project_id(cls, value: str) -> str:
        if not (value.isascii() and value.isdigit()):
            raise ValueError("project_id must be a number")
        return value

    @field_validator("credential")
    @classmethod
    def _credential_required(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("credential is required")
        return value

    @field_validator("branch", mode="before")
    @classmethod
    def _default_branch(cls, value: Optional[str]) -> str:
        if value is None or not str(value).strip():
            return DEFAULT_BRANCH
        return value

    @field_validator("variables_string", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Optional[str]) -> str:
        return value or ""

    @property
    def variables(self) -> Dict[str, str]:
        return decode_variables(self.variables_string)

    @property
    def access_token(self) -> str:
        return self.credential.get_secret_value()

    def with_variables_string(self, variables_string: str) -> "PipelineRequest":
        """Return a copy with a new raw variable string (mapping is re-derived)."""
        return self.model_copy(update={"variables_string": variables_string or ""})
