"""
Server-side state and operations of the admin page.

One AdminPage instance holds the state of one admin's page: the announcement
draft and its panel state, the target user id, and the watchlists fetched for
inspection. Every store call is a single attempt; failures become error alerts
on the context's sink and leave local state as it was.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from cryptoadmin.core.access import AccessPolicy
from cryptoadmin.core.state_machine import InvalidTransition, StateMachine
from cryptoadmin.database import StoreError
from cryptoadmin.models.alert import Alert
from cryptoadmin.models.coin import Coin, coin_label, index_coins
from cryptoadmin.models.session import AdminContext

logger = logging.getLogger(__name__)

WATCHLIST_COLLECTION = "watchlist"
SETTINGS_COLLECTION = "settings"

IDLE = "idle"
LOADING = "loading"
READY = "ready"
SAVING = "saving"
CLEARING = "clearing"

# save/clear are not gated against each other; only the initial load is
ANNOUNCEMENT_TRANSITIONS = {
    IDLE: [LOADING],
    LOADING: [READY],
    READY: [LOADING, SAVING, CLEARING],
    SAVING: [READY, CLEARING],
    CLEARING: [READY, SAVING],
}


class AdminPage:
    def __init__(self, store, is_authorized: AccessPolicy, settings_doc_id: str = "app"):
        self.store = store
        self.is_authorized = is_authorized
        self.settings_doc_id = settings_doc_id

        self.announcement = ""
        self.announcement_panel = StateMachine(IDLE, ANNOUNCEMENT_TRANSITIONS)
        self._announcement_writes = 0

        self.target_uid = ""
        self._watchlists: Dict[str, List[str]] = {}
        self._fetching: Dict[str, int] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

        self._in_admin_view = False
        self._coins_ref = None
        self._coin_map: Dict[str, Coin] = {}

    # --- access gate ---

    def is_admin(self, ctx: AdminContext) -> bool:
        return bool(self.is_authorized(ctx.user))

    async def render(self, ctx: AdminContext) -> Dict[str, Any]:
        """
        Evaluate the gate against the live session and build the view. The
        announcement is read once per entry into the admin view, not per render.
        """
        if not self.is_admin(ctx):
            self._in_admin_view = False
            return {"is_admin": False}
        if not self._in_admin_view:
            self._in_admin_view = True
            await self.load_announcement(ctx)
        return self.view(ctx)

    def view(self, ctx: AdminContext) -> Dict[str, Any]:
        coin_map = self.coin_map(ctx.coins)
        cached = self._watchlists.get(self.target_uid) if self.target_uid else None
        return {
            "is_admin": True,
            "quick_actions": {
                "coins_loaded": len(ctx.coins or []),
                "my_watchlist": len(ctx.watchlist or []),
            },
            "announcement": {
                "state": self.announcement_panel.state,
                "loading": self.announcement_loading,
                "text": self.announcement,
            },
            "watchlist": {
                "target_uid": self.target_uid,
                "loading": self.watchlist_loading(self.target_uid),
                "fetched": cached is not None,
                "items": [{"id": cid, "label": coin_label(cid, coin_map)} for cid in (cached or [])],
            },
        }

    def coin_map(self, coins) -> Dict[str, Coin]:
        if coins is not self._coins_ref:
            self._coins_ref = coins
            self._coin_map = index_coins(coins)
        return self._coin_map

    # --- quick actions ---

    def broadcast_test_alert(self, ctx: AdminContext) -> None:
        ctx.set_alert(Alert.success("Broadcast from Admin"))

    # --- announcement panel ---

    @property
    def announcement_loading(self) -> bool:
        return self.announcement_panel.state in (IDLE, LOADING)

    def _settings_ref(self):
        return SETTINGS_COLLECTION, self.settings_doc_id

    async def load_announcement(self, ctx: AdminContext) -> None:
        self.announcement_panel.apply(LOADING)
        try:
            snap = await self.store.get(*self._settings_ref())
            value = snap.data.get("announcement") if snap.exists else None
            self.announcement = str(value) if value else ""
        except StoreError as e:
            # panel stays usable with whatever text it had
            ctx.set_alert(Alert.error(str(e)))
        finally:
            self.announcement_panel.apply(READY)

    def edit_announcement(self, text: str) -> None:
        if self.announcement_loading:
            raise InvalidTransition("Announcement is still loading")
        self.announcement = text

    async def _write_announcement(self, ctx: AdminContext, state: str, value: str) -> bool:
        if self.announcement_loading:
            raise InvalidTransition("Announcement is still loading")
        self.announcement_panel.apply(state)
        self._announcement_writes += 1
        try:
            await self.store.set(*self._settings_ref(), {"announcement": value}, merge=True)
            return True
        except StoreError as e:
            ctx.set_alert(Alert.error(str(e)))
            return False
        finally:
            self._announcement_writes -= 1
            if self._announcement_writes == 0:
                self.announcement_panel.apply(READY)

    async def save_announcement(self, ctx: AdminContext) -> None:
        # written verbatim, no trimming
        if await self._write_announcement(ctx, SAVING, self.announcement):
            ctx.set_alert(Alert.success("Announcement saved"))

    async def clear_announcement(self, ctx: AdminContext) -> None:
        if await self._write_announcement(ctx, CLEARING, ""):
            self.announcement = ""
            ctx.set_alert(Alert.success("Announcement cleared"))

    # --- watchlist tools ---

    def set_target(self, uid: Optional[str]) -> None:
        self.target_uid = uid or ""

    def cached_watchlist(self, uid: str) -> Optional[List[str]]:
        """None when nothing has been fetched for `uid` yet."""
        cached = self._watchlists.get(uid)
        return list(cached) if cached is not None else None

    def watchlist_loading(self, uid: str) -> bool:
        return self._fetching.get(uid, 0) > 0

    def _lock_for(self, uid: str) -> asyncio.Lock:
        lock = self._locks.get(uid)
        if lock is None:
            lock = self._locks[uid] = asyncio.Lock()
        return lock

    async def fetch_watchlist(self, ctx: AdminContext, uid: Optional[str]) -> None:
        if not uid:
            return
        self._fetching[uid] = self._fetching.get(uid, 0) + 1
        try:
            async with self._lock_for(uid):
                snap = await self.store.get(WATCHLIST_COLLECTION, uid)
                coins = snap.data.get("coins") if snap.exists else None
                self._watchlists[uid] = [str(c) for c in coins] if isinstance(coins, list) else []
        except StoreError as e:
            ctx.set_alert(Alert.error(str(e)))
        finally:
            self._fetching[uid] -= 1
            if not self._fetching[uid]:
                del self._fetching[uid]

    async def clear_watchlist(self, ctx: AdminContext, uid: Optional[str]) -> None:
        if not uid:
            return
        async with self._lock_for(uid):
            try:
                await self.store.set(WATCHLIST_COLLECTION, uid, {"coins": []}, merge=True)
            except StoreError as e:
                ctx.set_alert(Alert.error(str(e)))
                return
            if uid == self.target_uid or uid in self._watchlists:
                self._watchlists[uid] = []
            ctx.set_alert(Alert.success(f"Cleared watchlist for {uid}"))

    async def remove_coin(self, ctx: AdminContext, uid: Optional[str], coin_id: Optional[str]) -> None:
        """
        Drop `coin_id` from the cached list for `uid` and write the whole
        resulting list back. The cache is only updated once the write lands.
        """
        if not uid or not coin_id:
            return
        async with self._lock_for(uid):
            current = self._watchlists.get(uid)
            if current is None:
                # an unfetched list would be written back as empty
                ctx.set_alert(Alert.error(f"Fetch the watchlist for {uid} before removing coins"))
                return
            remaining = [c for c in current if c != coin_id]
            try:
                await self.store.set(WATCHLIST_COLLECTION, uid, {"coins": remaining}, merge=True)
            except StoreError as e:
                ctx.set_alert(Alert.error(str(e)))
                return
            self._watchlists[uid] = remaining
            ctx.set_alert(Alert.success(f"Removed {coin_id} from {uid}"))


class PageRegistry:
    """One AdminPage per signed-in user id, kept for the life of the process."""

    def __init__(self, store, is_authorized: AccessPolicy, settings_doc_id: str = "app"):
        self.store = store
        self.is_authorized = is_authorized
        self.settings_doc_id = settings_doc_id
        self._pages: Dict[str, AdminPage] = {}

    def page_for(self, uid: str) -> AdminPage:
        page = self._pages.get(uid)
        if page is None:
            logger.info("Opening admin page state for %s", uid)
            page = self._pages[uid] = AdminPage(self.store, self.is_authorized, self.settings_doc_id)
        return page

    def clear(self) -> None:
        self._pages.clear()
