from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from taskwhisper.models import Channel, Task

Priority = Literal["urgent", "normal", "low"]
Category = Literal["work", "personal", "health", "shopping", "calls", "other"]


class TaskIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: str = Field(min_length=1)
    suggested_date: str = Field(alias="suggestedDate")
    priority: Priority
    category: Category

    def to_task(self) -> Task:
        return Task(
            description=self.description,
            suggested_date=self.suggested_date,
            priority=self.priority,
            category=self.category,
        )


class Analysis(BaseModel):
    """Shape the language model must answer with."""

    model_config = ConfigDict(populate_by_name=True)

    tasks: List[TaskIn] = Field(min_length=1)
    email_draft: str = Field(alias="emailDraft")
    suggested_send_time: datetime = Field(alias="suggestedSendTime")


class AnalyzeRequest(BaseModel):
    transcript: str = Field(min_length=1)


class SendEmailRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    to: EmailStr
    subject: Optional[str] = None
    email_body: str = Field(default="", alias="emailBody")
    tasks: List[TaskIn] = Field(default_factory=list)


class CreateReminderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")
    transcript: str = ""
    tasks: List[TaskIn] = Field(default_factory=list)
    email_draft: str = Field(default="", alias="emailDraft")
    scheduled_for: datetime = Field(alias="scheduledFor")
    notification_methods: List[Literal["email", "sms"]] = Field(
        default_factory=lambda: ["email"], alias="notificationMethods"
    )

    @model_validator(mode="after")
    def _check_channels(self) -> "CreateReminderRequest":
        if not self.notification_methods:
            self.notification_methods = ["email"]
        if "sms" in self.notification_methods:
            if not self.phone_number or not any(ch.isdigit() for ch in self.phone_number):
                raise ValueError("phoneNumber is required when sms is selected")
        return self

    def channels(self) -> frozenset[Channel]:
        return frozenset(Channel(m) for m in self.notification_methods)


class RescheduleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scheduled_for: datetime = Field(alias="scheduledFor")
