"""Data models for parsed collection files.

Request and environment files are converted into these models; they are
frozen so a parsed value can be shared from the cache safely.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


class RequestBody(BaseModel):
    """Body block contents, kept as raw text."""

    model_config = ConfigDict(frozen=True)

    kind: str  # json / text / xml / formUrlEncoded / multipartForm / graphql / sparql
    raw_content: str


class RequestDefinition(BaseModel):
    """A single API call parsed from one request file."""

    model_config = ConfigDict(frozen=True)

    name: str
    method: HttpMethod = "GET"
    url: str = ""  # may hold unresolved {{variables}}
    headers: dict[str, str] = Field(default_factory=dict)
    auth_mode: str = "none"
    body: RequestBody | None = None
    tests: list[str] = Field(default_factory=list)
    request_type: str | None = None  # meta "type", e.g. http / graphql
    sequence: int | None = None
    folder: str = ""
    path: str | None = None

    @property
    def runnable(self) -> bool:
        return bool(self.url)


class EnvironmentDefinition(BaseModel):
    """A named set of variables from ``environments/<name>.bru``."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    variables: dict[str, str] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
