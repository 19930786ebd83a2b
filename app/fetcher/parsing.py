"""
Page parsing for YouTube search and channel pages.

Both pages embed their state as a JSON blob assigned to ytInitialData.
Only the handful of fields the service needs are read; everything else in
the blob is ignored.
"""
import json
import re
from typing import Any, Dict, Iterator, List, Optional

from app.errors import ExtractionError
from app.models import Item
from app.utils.helpers import parse_count, safe_lower, safe_str

_INITIAL_DATA_RE = re.compile(
    r"(?:var\s+ytInitialData|window\[\"ytInitialData\"\])\s*=\s*(\{.*?\})\s*;\s*</script>",
    re.DOTALL,
)
_OG_IMAGE_RE = re.compile(
    r"<meta\s+property=\"og:image\"\s+content=\"([^\"]+)\"",
    re.IGNORECASE,
)
_SUBSCRIBERS_RE = re.compile(r"(\d[\d,.]*[KMB]?)\s+subscribers?\b", re.IGNORECASE)

# Raised by the JSON walk when a node is not the type the page normally has
_SHAPE_ERRORS = (AttributeError, KeyError, TypeError, IndexError)


def extract_initial_data(html: str) -> Dict[str, Any]:
    """
    Pull the ytInitialData blob out of a page.

    Raises:
        ExtractionError: If the blob is missing or not valid JSON
    """
    match = _INITIAL_DATA_RE.search(html or "")
    if not match:
        raise ExtractionError("ytInitialData not found in page")
    try:
        return json.loads(match.group(1))
    except json.JSONDecodeError as e:
        raise ExtractionError(f"ytInitialData is not valid JSON: {e}") from e


def iter_key(node: Any, key: str) -> Iterator[Any]:
    """Yield every value stored under the given key, depth first."""
    if isinstance(node, dict):
        for k, v in node.items():
            if k == key:
                yield v
            yield from iter_key(v, key)
    elif isinstance(node, list):
        for v in node:
            yield from iter_key(v, key)


def iter_strings(node: Any) -> Iterator[str]:
    """Yield every string value in the tree."""
    if isinstance(node, str):
        yield node
    elif isinstance(node, dict):
        for v in node.values():
            yield from iter_strings(v)
    elif isinstance(node, list):
        for v in node:
            yield from iter_strings(v)


def text_of(node: Any) -> str:
    """Flatten a {"simpleText": ...} or {"runs": [...]} text node."""
    if not isinstance(node, dict):
        return ""
    if "simpleText" in node:
        return safe_str(node["simpleText"])
    return "".join(safe_str(run.get("text")) for run in node.get("runs", []) if isinstance(run, dict))


def _channel_path(renderer: Dict[str, Any]) -> str:
    for owner_key in ("ownerText", "longBylineText", "shortBylineText"):
        for run in (renderer.get(owner_key) or {}).get("runs", []):
            browse = (run.get("navigationEndpoint") or {}).get("browseEndpoint") or {}
            path = browse.get("canonicalBaseUrl") or ""
            if not path and browse.get("browseId"):
                path = f"/channel/{browse['browseId']}"
            if path:
                return path
    return ""


def parse_video_renderer(renderer: Dict[str, Any], base_url: str) -> Optional[Item]:
    """Map one videoRenderer node to an Item; None if it has no video id."""
    video_id = renderer.get("videoId")
    if not video_id:
        return None

    channel_path = _channel_path(renderer)
    channel_name = text_of(renderer.get("ownerText")) or text_of(renderer.get("longBylineText"))
    viewers = text_of(renderer.get("viewCountText")) or text_of(renderer.get("shortViewCountText"))

    return Item(
        id=video_id,
        title=text_of(renderer.get("title")).strip(),
        url=f"{base_url}/watch?v={video_id}",
        channel_id=channel_path.rstrip("/").split("/")[-1] if channel_path else "",
        channel_name=channel_name.strip(),
        channel_url=f"{base_url}{channel_path}" if channel_path else "",
        viewer_count=parse_count(viewers),
    )


def parse_search_results(
    html: str,
    query: str,
    max_results: int,
    base_url: str,
) -> List[Item]:
    """
    Parse live items from a search results page.

    Only items whose title contains the query (case-insensitive) are kept,
    repeated video ids are dropped, and at most max_results are returned.
    """
    data = extract_initial_data(html)
    needle = safe_lower(query).strip()

    items: List[Item] = []
    seen = set()
    for renderer in iter_key(data, "videoRenderer"):
        if len(items) >= max_results:
            break
        if not isinstance(renderer, dict):
            continue
        try:
            item = parse_video_renderer(renderer, base_url)
        except _SHAPE_ERRORS as e:
            raise ExtractionError(
                f"Unexpected videoRenderer shape ({type(e).__name__}): {e}"
            ) from e
        if item is None or item.id in seen:
            continue
        if needle and needle not in safe_lower(item.title):
            continue
        seen.add(item.id)
        items.append(item)
    return items


def parse_avatar_url(html: str) -> Optional[str]:
    """Channel avatar from the og:image tag, falling back to the page header."""
    match = _OG_IMAGE_RE.search(html or "")
    if match:
        return match.group(1)

    data = extract_initial_data(html)
    try:
        for avatar in iter_key(data, "avatar"):
            sources = avatar.get("thumbnails") if isinstance(avatar, dict) else None
            if not sources:
                sources = next(iter_key(avatar, "sources"), None)
            if sources:
                return safe_str(sources[-1].get("url")) or None
    except _SHAPE_ERRORS as e:
        raise ExtractionError(f"Unexpected channel avatar shape ({type(e).__name__}): {e}") from e
    return None


def parse_subscriber_count(html: str) -> Optional[int]:
    """First "N subscribers" string in the channel page state."""
    data = extract_initial_data(html)
    for text in iter_strings(data):
        match = _SUBSCRIBERS_RE.search(text)
        if match:
            return parse_count(match.group(1))
    return None
