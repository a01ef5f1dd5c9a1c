"""Pydantic models for API request bodies."""

from pydantic import BaseModel, Field


class CreateSessionRequest(BaseModel):
    """Body for creating a session."""

    nickname: str


class JoinSessionRequest(BaseModel):
    """Body for joining a session by code."""

    code: str
    nickname: str


class SelectionRequest(BaseModel):
    """Body for submitting picks."""

    item_ids: list[str]


class RatingEntry(BaseModel):
    """One rating in a submission."""

    item_id: str
    q1: int
    q2: int
    q3: int
    is_self_rating: bool


class RatingsRequest(BaseModel):
    """Body for submitting ratings."""

    ratings: list[RatingEntry] = Field(min_length=1)
