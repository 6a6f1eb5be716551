"""
Module: receive.py
Description: Receive-call configuration for the SQS poller.

ReceiveOptions is a flat struct of the receive_message arguments the
poller sends on every fetch. Caller overrides replace defaults key by
key; nothing is merged recursively.
"""

from typing import Any, Dict, List, Mapping, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

from sqs_poller.models.message import RECEIVE_COUNT_ATTRIBUTE


class ReceiveOptions(BaseModel):
    """
    Arguments for SQS receive_message.

    Fields accept either their boto3 name (MaxNumberOfMessages) or their
    snake_case name (max_number_of_messages). Unknown keys are kept and
    passed to the transport untouched.

    Attributes:
        attribute_names: Message attributes to request
        max_number_of_messages: Batch size (1-10)
        wait_time_seconds: Long-poll wait (0-20)
        visibility_timeout: Optional per-receive visibility timeout
        message_attribute_names: Optional custom attributes to request
        message_system_attribute_names: Optional system attributes to request
        receive_request_attempt_id: Optional FIFO deduplication id
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        validate_assignment=True
    )

    attribute_names: List[str] = Field(
        default_factory=lambda: [RECEIVE_COUNT_ATTRIBUTE],
        alias="AttributeNames"
    )
    max_number_of_messages: int = Field(default=10, ge=1, le=10, alias="MaxNumberOfMessages")
    wait_time_seconds: int = Field(default=20, ge=0, le=20, alias="WaitTimeSeconds")
    visibility_timeout: Optional[int] = Field(default=None, ge=0, alias="VisibilityTimeout")
    message_attribute_names: Optional[List[str]] = Field(default=None, alias="MessageAttributeNames")
    message_system_attribute_names: Optional[List[str]] = Field(
        default=None,
        alias="MessageSystemAttributeNames"
    )
    receive_request_attempt_id: Optional[str] = Field(default=None, alias="ReceiveRequestAttemptId")

    @classmethod
    def from_overrides(
        cls,
        overrides: Union["ReceiveOptions", Mapping[str, Any], None] = None,
        **defaults: Any
    ) -> "ReceiveOptions":
        """
        Resolve receive options from defaults and caller overrides.

        Args:
            overrides: Caller values; these win over defaults
            **defaults: Default field values (e.g. from PollerSettings)

        Returns:
            Validated ReceiveOptions
        """
        if isinstance(overrides, ReceiveOptions):
            overrides = overrides.model_dump(by_alias=True, exclude_unset=True)

        values: Dict[str, Any] = {}
        for name, value in defaults.items():
            values[cls.model_fields[name].alias or name] = value
        for name, value in (overrides or {}).items():
            field = cls.model_fields.get(name)
            values[field.alias if field and field.alias else name] = value

        return cls.model_validate(values)

    def to_request(self, queue_url: str) -> Dict[str, Any]:
        """
        Build keyword arguments for receive_message.

        Args:
            queue_url: Queue the request targets

        Returns:
            Dict with QueueUrl and every non-empty option in boto3 naming
        """
        request: Dict[str, Any] = {"QueueUrl": queue_url}
        request.update(self.model_dump(by_alias=True, exclude_none=True))
        return request
