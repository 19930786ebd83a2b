"""
Data models for live items.

Items are produced by a fetcher and stored as whole snapshots; views are
composed per request and never stored.
"""
from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class Item:
    """A single live stream found by the search scrape."""
    id: str
    title: str
    url: str
    channel_id: str  # Channel handle or path segment, e.g. "@somechannel"
    channel_name: str
    channel_url: str
    viewer_count: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "channelId": self.channel_id,
            "channelName": self.channel_name,
            "channelUrl": self.channel_url,
            "viewerCount": self.viewer_count,
        }


@dataclass(frozen=True)
class EnrichedView:
    """An Item joined with its channel's avatar and subscriber count."""
    item: Item
    channel_avatar_url: str = ""
    subscriber_count: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON response."""
        result = self.item.to_dict()
        result["channelAvatarUrl"] = self.channel_avatar_url
        result["subscriberCount"] = self.subscriber_count
        return result


def unique_items(items: List[Item]) -> List[Item]:
    """Drop repeated item ids, keeping the first occurrence."""
    seen = set()
    result = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        result.append(item)
    return result


def channel_keys(items: List[Item]) -> List[str]:
    """Distinct non-empty channel ids in first-seen order."""
    keys: Dict[str, None] = {}
    for item in items:
        if item.channel_id:
            keys.setdefault(item.channel_id, None)
    return list(keys)
