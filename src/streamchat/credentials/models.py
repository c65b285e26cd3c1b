"""Data model for the bearer credential."""

from pydantic import BaseModel, ConfigDict, Field


class Credential(BaseModel):
    """Bearer token, session identifier and expiry issued by /auth.

    Replaced wholesale on refresh; never mutated field by field.
    """

    model_config = ConfigDict(frozen=True)

    token: str = Field(min_length=1, description="Bearer token for the Authorization header")
    session_id: str = Field(min_length=1, description="Opaque backend session identifier")
    expires_at: int = Field(description="Expiry as epoch seconds")

    def is_fresh(self, now: float, margin: float) -> bool:
        """Whether the credential stays valid for at least ``margin`` more seconds."""
        return self.expires_at > now + margin
