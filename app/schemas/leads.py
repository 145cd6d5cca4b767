from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional
from app.schemas import CamelModel

MAX_EXTRA_FIELD_LENGTH = 200


class LeadFormData(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    company: Optional[str] = Field(default=None, max_length=100)
    message: Optional[str] = Field(default=None, max_length=1000)
    phone: Optional[str] = Field(default=None, max_length=20)

    class Config:
        extra = "allow"     # champs personnalisés acceptés, mais bornés

    @model_validator(mode="after")
    def _bound_extra_fields(self):
        for key, value in (self.model_extra or {}).items():
            if not isinstance(value, str):
                raise ValueError(f"{key} must be a string")
            if len(value) > MAX_EXTRA_FIELD_LENGTH:
                raise ValueError(f"{key} is too long (max {MAX_EXTRA_FIELD_LENGTH})")
        return self


class LeadSubmissionRequest(CamelModel):
    form_data: LeadFormData
    utm_source: Optional[str] = Field(default=None, max_length=100)
    utm_medium: Optional[str] = Field(default=None, max_length=100)
    utm_campaign: Optional[str] = Field(default=None, max_length=100)
    honeypot: Optional[str] = None


class LeadSubmissionResponse(CamelModel):
    success: bool = True
    message: str
    submission_id: Optional[str] = None
