"""
Base Models for API Request/Response Validation

Request bodies reject unknown fields so a client sending `missed` instead of
`missed_questions` gets a 422 instead of an empty batch. Response models are
built straight from ORM rows.

Usage:
    class MissedQuestion(StrictRequest):
        question_id: str

    class CardResponse(StrictResponse):
        id: str
        interval: int

    CardResponse.model_validate(review_card_row)

Architecture:
    API Request → StrictRequest (extra="forbid") → Route Handler
    DB Model → StrictResponse (extra="ignore") → API Response
"""

from pydantic import BaseModel, ConfigDict


class StrictRequest(BaseModel):
    """
    Base model for API request bodies.

    Features:
        - extra="forbid": Unknown fields raise 422 Unprocessable Entity
        - validate_default=True: Validates default values
        - str_strip_whitespace=True: Trims whitespace from ids and topics
        - from_attributes=True: Allows ORM model conversion
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
        from_attributes=True,
    )


class StrictResponse(BaseModel):
    """
    Base model for API response bodies.

    Rows carry columns the API does not expose (created_at, updated_at);
    those are ignored rather than rejected.
    """

    model_config = ConfigDict(
        extra="ignore",
        validate_default=True,
        from_attributes=True,
    )
