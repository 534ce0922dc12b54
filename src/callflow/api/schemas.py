"""
Request bodies for the HTTP front door.

Required fields are declared optional here so that missing values reach the
workflow's own input validation and come back as ``invalid_input``.
"""

from pydantic import BaseModel, ConfigDict, Field


class VoiceCallWorkflowRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_number: str | None = Field(default=None, alias="targetNumber")
    message: str | None = None
    caller_identity: str | None = Field(default=None, alias="callerIdentity")


class CallbackRequest(BaseModel):
    phone_number: str | None = None
    from_number: str | None = None
    contact_name: str | None = None


class SmsRequest(BaseModel):
    number: str | None = None
    message: str | None = None
