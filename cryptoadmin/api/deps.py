from pathlib import Path
from typing import Dict, List, Optional, Tuple
import logging

from fastapi import Depends, HTTPException, status, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError

from cryptoadmin.config import settings
from cryptoadmin.core.access import allow_list_policy
from cryptoadmin.core.admin_page import AdminPage, PageRegistry, WATCHLIST_COLLECTION
from cryptoadmin.database import FileBackedDocumentStore, StoreError, store
from cryptoadmin.models.coin import Coin
from cryptoadmin.models.session import AdminContext, User

logger = logging.getLogger(__name__)

# tokens come from the external identity provider; absence is not an error here
bearer_scheme = HTTPBearer(auto_error=False)

_registry: Optional[PageRegistry] = None
_catalog_cache: Dict[Path, Tuple[Optional[int], List[Coin]]] = {}


def get_store() -> FileBackedDocumentStore:
    """
    Dependency that returns the document store.
    Usage:
        store = Depends(get_store)
    """
    return store


def get_registry() -> PageRegistry:
    global _registry
    if _registry is None:
        _registry = PageRegistry(
            store,
            allow_list_policy(settings.admin_emails),
            settings_doc_id=settings.SETTINGS_DOC_ID,
        )
    return _registry


def _decode_token(token: str) -> Optional[User]:
    """
    Verify the identity provider's JWT and return the user it names, or None.
    The uid comes from 'sub' (or 'uid' / 'user_id'), the email from 'email'.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    uid = payload.get("sub") or payload.get("uid") or payload.get("user_id")
    if not uid:
        return None
    return User(uid=str(uid), email=str(payload.get("email") or ""))


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[User]:
    """
    Resolve the signed-in user from the Authorization header (Bearer) or the
    'access_token' cookie. Returns None for anonymous or invalid tokens.
    """
    if credentials and credentials.credentials:
        return _decode_token(credentials.credentials)
    cookie_token = request.cookies.get("access_token")
    if cookie_token:
        return _decode_token(cookie_token)
    return None


def load_catalog(db: FileBackedDocumentStore) -> List[Coin]:
    """
    Parsed coin catalog, reused until coins.csv changes on disk so the page's
    id index is only rebuilt when the catalog does.
    """
    path = db.data_dir / settings.COINS_FILE
    try:
        mtime = path.stat().st_mtime_ns
    except FileNotFoundError:
        mtime = None
    cached = _catalog_cache.get(path)
    if cached is not None and cached[0] == mtime:
        return cached[1]
    coins = [Coin.from_dict(r) for r in db.list_records(settings.COINS_FILE)]
    _catalog_cache[path] = (mtime, coins)
    return coins


async def get_context(
    user: Optional[User] = Depends(get_optional_user),
    db: FileBackedDocumentStore = Depends(get_store),
) -> AdminContext:
    """
    Build what the page consumes from upstream: session user, the user's own
    watchlist and the coin catalog. Upstream read failures degrade to empty data.
    """
    try:
        coins = await run_in_threadpool(load_catalog, db)
    except StoreError as e:
        logger.warning("Coin catalog unavailable: %s", e)
        coins = []

    watchlist = []
    if user is not None:
        try:
            snap = await db.get(WATCHLIST_COLLECTION, user.uid)
            own = snap.data.get("coins") if snap.exists else None
            watchlist = list(own) if isinstance(own, list) else []
        except StoreError as e:
            logger.warning("Watchlist for %s unavailable: %s", user.uid, e)

    return AdminContext(user=user, watchlist=watchlist, coins=coins)


def require_admin(
    user: Optional[User] = Depends(get_optional_user),
    registry: PageRegistry = Depends(get_registry),
) -> User:
    """
    Dependency for the JSON API: 401 when not signed in, 403 when the email is
    not on the allow-list.
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not registry.is_authorized(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required")
    return user


def get_admin_page(
    user: User = Depends(require_admin),
    registry: PageRegistry = Depends(get_registry),
) -> AdminPage:
    return registry.page_for(user.uid)
