import uuid

from pydantic import BaseModel, ConfigDict, Field


class Rider(BaseModel):
    """A registered rider. Ride requests are accepted only from known riders."""

    model_config = ConfigDict(frozen=True)

    rider_id: str = Field(default_factory=lambda: uuid.uuid4().hex, min_length=1)
    name: str = Field(min_length=1)
