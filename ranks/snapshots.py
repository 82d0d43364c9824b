"""
Snapshot Types for Feed Ranking

Immutable records produced by the data layer at query time. The engine
reads them and never mutates them.

    - PostSnapshot: a candidate post with its engagement counts
    - AuthorSnapshot: profile/network attributes of a post's author
    - ViewerContext: who is asking, and whom they follow
"""

import re

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union

HASHTAG_PATTERN = re.compile(r"#(\w+)")


def to_timestamp(value: Union[int, float, str, datetime, None]) -> float:
    """Convert unix seconds, ISO-8601 strings or datetimes to unix seconds."""
    if value is None:
        return 0.0
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, str):
        return to_timestamp(datetime.fromisoformat(value.replace("Z", "+00:00")))
    return float(value)


def _count(info: dict, key: str) -> int:
    """Missing or null counts become 0; negative counts are clamped."""
    return max(int(info.get(key) or 0), 0)


def _require(info: dict, key: str, kind: str):
    val = info.get(key)
    if val is None or val == "":
        raise ValueError(f"{kind} is missing required field '{key}'")
    return str(val)


@dataclass(frozen=True)
class PostSnapshot:
    """A candidate post.

    Attributes:
        id: Post id.
        author_id: Id of the posting user.
        created_at: Unix timestamp (seconds).
        content: Post text.
        media_count: Number of attached media files.
        has_poll: Whether the post carries a poll.
        like_count, repost_count, reply_count, view_count, save_count:
            Interaction counts.
        unique_engager_count: Distinct users who interacted with the post.
        reply_lengths: Character lengths of the post's replies, when known.
    """

    id: str
    author_id: str
    created_at: float
    content: str = ""
    media_count: int = 0
    has_poll: bool = False
    like_count: int = 0
    repost_count: int = 0
    reply_count: int = 0
    view_count: int = 0
    unique_engager_count: int = 0
    save_count: int = 0
    reply_lengths: tuple = ()

    @property
    def total_engagement(self) -> int:
        return self.like_count + self.repost_count + self.reply_count + self.view_count

    @property
    def hashtags(self) -> frozenset:
        return frozenset(tag.lower() for tag in HASHTAG_PATTERN.findall(self.content))

    @classmethod
    def from_dict(cls, info: dict) -> "PostSnapshot":
        return cls(
            id=_require(info, "id", "Post"),
            author_id=_require(info, "author_id", "Post"),
            created_at=to_timestamp(info.get("created_at")),
            content=info.get("content") or "",
            media_count=_count(info, "media_count"),
            has_poll=bool(info.get("has_poll")),
            like_count=_count(info, "like_count"),
            repost_count=_count(info, "repost_count"),
            reply_count=_count(info, "reply_count"),
            view_count=_count(info, "view_count"),
            unique_engager_count=_count(info, "unique_engager_count"),
            save_count=_count(info, "save_count"),
            reply_lengths=tuple(int(n) for n in info.get("reply_lengths") or ()),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "author_id": self.author_id,
            "created_at": self.created_at,
            "content": self.content,
            "media_count": self.media_count,
            "has_poll": self.has_poll,
            "like_count": self.like_count,
            "repost_count": self.repost_count,
            "reply_count": self.reply_count,
            "view_count": self.view_count,
            "unique_engager_count": self.unique_engager_count,
            "save_count": self.save_count,
            "reply_lengths": list(self.reply_lengths),
        }


@dataclass(frozen=True)
class AuthorSnapshot:
    """Profile/network attributes of an author.

    `interests` are topic tags the author mostly posts about, and
    `recent_contents` are the texts of the author's recent posts (used for
    near-duplicate detection).
    """

    user_id: str
    account_created_at: float
    follower_count: int = 0
    verified: bool = False
    profile_type: str = ""
    interests: frozenset = frozenset()
    recent_contents: tuple = ()

    @classmethod
    def from_dict(cls, info: dict) -> "AuthorSnapshot":
        return cls(
            user_id=_require(info, "user_id", "Author"),
            account_created_at=to_timestamp(info.get("account_created_at")),
            follower_count=_count(info, "follower_count"),
            verified=bool(info.get("verified")),
            profile_type=info.get("profile_type") or "",
            interests=frozenset(t.lower() for t in info.get("interests") or ()),
            recent_contents=tuple(info.get("recent_contents") or ()),
        )

    @classmethod
    def unknown(cls, user_id: str) -> "AuthorSnapshot":
        """Placeholder for authors the data layer could not resolve."""
        return cls(user_id=user_id, account_created_at=0.0)


@dataclass(frozen=True)
class ViewerContext:
    """The requesting viewer and their follow graph.

    A request ranks posts from many authors, so the per-author follow flags
    are derived from the viewer's following/follower id sets.
    """

    viewer_id: Optional[str] = None
    following_ids: frozenset = field(default_factory=frozenset)
    follower_ids: frozenset = field(default_factory=frozenset)
    interests: frozenset = field(default_factory=frozenset)

    @property
    def is_anonymous(self) -> bool:
        return not self.viewer_id

    def follows(self, author_id: str) -> bool:
        """viewer -> author"""
        return author_id in self.following_ids

    def followed_by(self, author_id: str) -> bool:
        """author -> viewer"""
        return author_id in self.follower_ids

    @classmethod
    def anonymous(cls) -> "ViewerContext":
        return cls()

    @classmethod
    def from_dict(cls, info: Optional[dict]) -> "ViewerContext":
        if not info:
            return cls.anonymous()
        return cls(
            viewer_id=info.get("viewer_id") or None,
            following_ids=frozenset(info.get("following_ids") or ()),
            follower_ids=frozenset(info.get("follower_ids") or ()),
            interests=frozenset(t.lower() for t in info.get("interests") or ()),
        )
