"""Email credential model.

Defines a sending identity (SMTP account) with its daily quota.

Author: Odiseo
Created: 2025-10-18
Version: 2.0.0
"""

from pydantic import BaseModel, Field


class EmailCredential(BaseModel):
    """SMTP sending identity stored in ``email_credentials``.

    Attributes:
        id: Credential ID.
        name: Label shown to operators.
        email: Sender address.
        smtp_server: SMTP server hostname.
        smtp_port: SMTP server port; 465 implies implicit TLS.
        username: SMTP authentication username.
        password: SMTP authentication password.
        is_active: Whether the credential may be used.
        daily_limit: Max sends per day (None means unlimited).
        daily_usage: Sends counted today.
    """

    id: str = Field(..., description="Credential ID")
    name: str | None = Field(default=None, description="Operator label")
    email: str = Field(..., min_length=3, description="Sender address")
    smtp_server: str = Field(..., min_length=1, description="SMTP server hostname")
    smtp_port: int = Field(default=587, ge=1, le=65535, description="SMTP server port")
    username: str = Field(default="", description="SMTP authentication username")
    password: str = Field(default="", repr=False, description="SMTP authentication password")
    is_active: bool = Field(default=True, description="Usable flag")
    daily_limit: int | None = Field(default=None, ge=0, description="Daily quota")
    daily_usage: int = Field(default=0, ge=0, description="Sends counted today")

    model_config = {"from_attributes": True, "coerce_numbers_to_str": True}

    @property
    def is_eligible(self) -> bool:
        """Active and, when a limit is set, still under it."""
        if not self.is_active:
            return False
        return self.daily_limit is None or self.daily_usage < self.daily_limit

    @property
    def quota_label(self) -> str:
        limit = "unlimited" if self.daily_limit is None else str(self.daily_limit)
        return f"{self.daily_usage}/{limit}"
