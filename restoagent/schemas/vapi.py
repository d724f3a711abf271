"""Vapi server-message envelope"""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field


class VapiModel(BaseModel):
    """Vapi sends many fields we do not use; keep them around"""

    class Config:
        extra = "allow"
        populate_by_name = True


class VapiFunction(VapiModel):
    name: Optional[str] = None
    # JSON-encoded string or an already-decoded object
    arguments: Optional[Union[str, Dict[str, Any]]] = None
    # Legacy function-call payloads carry "parameters"
    parameters: Optional[Dict[str, Any]] = None


class VapiToolCall(VapiModel):
    id: Optional[str] = None
    type: Optional[str] = "function"
    function: VapiFunction = Field(default_factory=VapiFunction)


class VapiCustomer(VapiModel):
    number: Optional[str] = None


class VapiCall(VapiModel):
    id: Optional[str] = None
    customer: Optional[VapiCustomer] = None
    metadata: Optional[Dict[str, Any]] = None
    started_at: Optional[str] = Field(default=None, alias="startedAt")
    ended_at: Optional[str] = Field(default=None, alias="endedAt")


class VapiAssistant(VapiModel):
    id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class VapiMessage(VapiModel):
    type: str
    status: Optional[str] = None
    tool_calls: Optional[List[VapiToolCall]] = Field(default=None, alias="toolCalls")
    function_call: Optional[VapiFunction] = Field(default=None, alias="functionCall")
    call: Optional[VapiCall] = None
    assistant: Optional[VapiAssistant] = None
    metadata: Optional[Dict[str, Any]] = None
    transcript: Optional[str] = None
    summary: Optional[str] = None
    ended_reason: Optional[str] = Field(default=None, alias="endedReason")

    def pending_tool_calls(self) -> List[VapiToolCall]:
        """New-style toolCalls, or the legacy single functionCall"""
        if self.tool_calls:
            return self.tool_calls
        if self.function_call is not None:
            return [VapiToolCall(function=self.function_call)]
        return []


class VapiWebhookPayload(VapiModel):
    message: VapiMessage


class ToolCallResult(BaseModel):
    """One entry of the tool-calls response"""
    tool_call_id: Optional[str] = Field(default=None, serialization_alias="toolCallId")
    result: str


class ToolCallsResponse(BaseModel):
    results: List[ToolCallResult]
