from fastapi import APIRouter, Depends, HTTPException, Body
from typing import Optional

from cryptoadmin.api.deps import get_admin_page, get_context
from cryptoadmin.api.schemas.admin import (
    ActionResponse,
    AnnouncementIn,
    AnnouncementPanelOut,
    AnnouncementSaveIn,
    PageViewOut,
    TargetIn,
)
from cryptoadmin.core.admin_page import AdminPage
from cryptoadmin.core.state_machine import InvalidTransition
from cryptoadmin.models.session import AdminContext

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _respond(page: AdminPage, ctx: AdminContext) -> ActionResponse:
    return ActionResponse(
        alerts=[a.to_dict() for a in ctx.alerts.history],
        view=page.view(ctx),
    )


@router.get("/view", response_model=PageViewOut)
async def get_view(page: AdminPage = Depends(get_admin_page), ctx: AdminContext = Depends(get_context)):
    """
    Current page view. The first call after entering the admin view loads the
    announcement; later calls only read local state.
    """
    return await page.render(ctx)


@router.post("/broadcast", response_model=ActionResponse)
async def broadcast(page: AdminPage = Depends(get_admin_page), ctx: AdminContext = Depends(get_context)):
    await page.render(ctx)
    page.broadcast_test_alert(ctx)
    return _respond(page, ctx)


# --- announcement ---

@router.get("/announcement", response_model=AnnouncementPanelOut)
async def get_announcement(page: AdminPage = Depends(get_admin_page), ctx: AdminContext = Depends(get_context)):
    view = await page.render(ctx)
    return view["announcement"]


@router.put("/announcement", response_model=ActionResponse)
async def edit_announcement(
    payload: AnnouncementIn,
    page: AdminPage = Depends(get_admin_page),
    ctx: AdminContext = Depends(get_context),
):
    await page.render(ctx)
    try:
        page.edit_announcement(payload.announcement)
    except InvalidTransition as it:
        raise HTTPException(status_code=400, detail=str(it))
    return _respond(page, ctx)


@router.post("/announcement/save", response_model=ActionResponse)
async def save_announcement(
    payload: Optional[AnnouncementSaveIn] = Body(None),
    page: AdminPage = Depends(get_admin_page),
    ctx: AdminContext = Depends(get_context),
):
    """
    Merge-write the draft into the settings document. A body with
    'announcement' replaces the draft first.
    """
    await page.render(ctx)
    try:
        if payload is not None and payload.announcement is not None:
            page.edit_announcement(payload.announcement)
        await page.save_announcement(ctx)
    except InvalidTransition as it:
        raise HTTPException(status_code=400, detail=str(it))
    return _respond(page, ctx)


@router.delete("/announcement", response_model=ActionResponse)
async def clear_announcement(page: AdminPage = Depends(get_admin_page), ctx: AdminContext = Depends(get_context)):
    await page.render(ctx)
    try:
        await page.clear_announcement(ctx)
    except InvalidTransition as it:
        raise HTTPException(status_code=400, detail=str(it))
    return _respond(page, ctx)


# --- watchlist tools ---

@router.put("/target", response_model=ActionResponse)
async def set_target(payload: TargetIn, page: AdminPage = Depends(get_admin_page), ctx: AdminContext = Depends(get_context)):
    await page.render(ctx)
    page.set_target(payload.uid)
    return _respond(page, ctx)


@router.post("/watchlists/{uid}/fetch", response_model=ActionResponse)
async def fetch_watchlist(uid: str, page: AdminPage = Depends(get_admin_page), ctx: AdminContext = Depends(get_context)):
    await page.render(ctx)
    await page.fetch_watchlist(ctx, uid)
    return _respond(page, ctx)


@router.delete("/watchlists/{uid}", response_model=ActionResponse)
async def clear_watchlist(uid: str, page: AdminPage = Depends(get_admin_page), ctx: AdminContext = Depends(get_context)):
    await page.render(ctx)
    await page.clear_watchlist(ctx, uid)
    return _respond(page, ctx)


@router.delete("/watchlists/{uid}/coins/{coin_id}", response_model=ActionResponse)
async def remove_coin(
    uid: str,
    coin_id: str,
    page: AdminPage = Depends(get_admin_page),
    ctx: AdminContext = Depends(get_context),
):
    await page.render(ctx)
    await page.remove_coin(ctx, uid, coin_id)
    return _respond(page, ctx)
