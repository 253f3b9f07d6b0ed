"""Base model for validated, user-supplied data (configs and suite files)."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Immutable model that rejects unknown keys.

    Configuration and suite files are hand-written, so a misspelled key must
    surface as a validation error instead of being silently dropped.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")
