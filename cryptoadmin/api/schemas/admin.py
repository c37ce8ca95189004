# --- Pydantic schemas for admin page endpoints ---
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class AlertOut(BaseModel):
    open: bool = True
    type: Literal["success", "error"]
    message: str


class AnnouncementIn(BaseModel):
    announcement: str = Field(..., description="Announcement text, stored verbatim")


class AnnouncementSaveIn(BaseModel):
    announcement: Optional[str] = Field(None, description="Replaces the draft before saving when given")


class TargetIn(BaseModel):
    uid: str = Field("", description="User id whose watchlist the panel works on")


class QuickActionsOut(BaseModel):
    coins_loaded: int
    my_watchlist: int


class AnnouncementPanelOut(BaseModel):
    state: str
    loading: bool
    text: str


class WatchlistItemOut(BaseModel):
    id: str
    label: str


class WatchlistPanelOut(BaseModel):
    target_uid: str
    loading: bool
    fetched: bool
    items: List[WatchlistItemOut] = []


class PageViewOut(BaseModel):
    is_admin: bool
    quick_actions: Optional[QuickActionsOut] = None
    announcement: Optional[AnnouncementPanelOut] = None
    watchlist: Optional[WatchlistPanelOut] = None


class ActionResponse(BaseModel):
    alerts: List[AlertOut] = []
    view: PageViewOut
