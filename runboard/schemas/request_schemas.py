from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RunTestRequest(BaseModel):
    # Presence of the ids is checked by the recorder so a missing field is a
    # VALIDATION_ERROR envelope rather than a framework 422.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    project_id: str | None = Field(default=None, max_length=128)
    script_id: str | None = Field(default=None, max_length=128)
    script_name: str | None = Field(default=None, max_length=512)
    user_id: str | None = Field(default=None, max_length=64)


class ReconcileRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    grace_sec: int | None = Field(default=None, ge=0)
