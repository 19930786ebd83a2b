"""
Pydantic schemas for API responses
"""
from pydantic import BaseModel
from typing import List, Optional


# ===== SERVICE SCHEMAS =====

class HealthStatus(BaseModel):
    """Liveness and snapshot state"""
    status: str
    jobs_running: bool
    has_snapshot: bool


class VersionInfo(BaseModel):
    """Version information"""
    name: str
    version: str
    stage: str
    full: str


# ===== LIVE ITEM SCHEMAS =====

class LiveItem(BaseModel):
    """One enriched live item; field names are part of the UI contract"""
    id: str
    title: str
    url: str
    channelId: str
    channelName: str
    channelUrl: str
    viewerCount: int = 0
    channelAvatarUrl: str = ""
    subscriberCount: int = 0


class LiveItemsResponse(BaseModel):
    """Body of GET /api/live-items"""
    success: bool
    items: List[LiveItem] = []
    message: Optional[str] = None
