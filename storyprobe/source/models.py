"""Data contracts for the extracted service surface."""

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class EndpointInfo(BaseModel):
    """HTTP route exposed by the service."""

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    handler: str = "<unknown>"
    comment: str = ""


class ModelInfo(BaseModel):
    """Data model declared in the service source."""

    model_config = ConfigDict(frozen=True)

    name: str
    fields: tuple[str, ...] = ()  # "id int", "name str"


class SourceModel(BaseModel):
    """Immutable snapshot of the service's observable surface."""

    model_config = ConfigDict(frozen=True)

    endpoints: tuple[EndpointInfo, ...] = ()
    models: tuple[ModelInfo, ...] = ()
    tables: frozenset[str] = Field(default_factory=frozenset)
    topics: frozenset[str] = Field(default_factory=frozenset)

    @field_validator("tables", mode="before")
    @classmethod
    def _lower_tables(cls, value):
        return frozenset(str(name).lower() for name in value)

    @property
    def sorted_tables(self) -> list[str]:
        return sorted(self.tables)

    @property
    def sorted_topics(self) -> list[str]:
        return sorted(self.topics)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def summary(self) -> str:
        """One-line human readable description of the surface."""
        summary = f"Project has {len(self.endpoints)} HTTP endpoint(s)"
        if self.tables:
            summary += f", uses DB tables: {', '.join(self.sorted_tables)}"
        if self.topics:
            summary += f", has Kafka topics: {', '.join(self.sorted_topics)}"
        return summary + "."
