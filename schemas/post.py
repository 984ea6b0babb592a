from pydantic import BaseModel, ConfigDict
from typing import List, Optional


class PostAuthor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = "Unknown"
    username: str = "unknown"
    profileImage: Optional[str] = None
    verified: bool = False


class PostEngagement(BaseModel):
    model_config = ConfigDict(frozen=True)

    likes: Optional[int] = None
    retweets: Optional[int] = None
    replies: Optional[int] = None


class PostContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str = ""
    author: PostAuthor
    images: List[str] = []
    createdAt: Optional[str] = None
    engagement: Optional[PostEngagement] = None


class PostSummary(BaseModel):
    """The part of a fetched post echoed back to the client."""
    text: str
    author: PostAuthor
    images: List[str]
    createdAt: Optional[str] = None
    engagement: Optional[PostEngagement] = None
