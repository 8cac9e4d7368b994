# src/gateway/request_models.py

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, examples=["What is the weather like in Dallas?"])


class ChatReply(BaseModel):
    reply: str = Field(..., examples=["Sunny, with a high of 31°C."])


class ErrorResponse(BaseModel):
    error: str = Field(..., examples=["message required"])
