# cryptoadmin/main.py
from fastapi import Depends, FastAPI, Request
from fastapi.templating import Jinja2Templates
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from cryptoadmin.config import settings
from cryptoadmin.api.deps import get_context, get_registry
from cryptoadmin.api.routes import admin as admin_routes
from cryptoadmin.core.admin_page import PageRegistry
from cryptoadmin.database import store
from cryptoadmin.middleware.cors_config import configure_cors
from cryptoadmin.middleware.security_headers import add_security_headers
from cryptoadmin.models.session import AdminContext


logger = logging.getLogger("uvicorn.error")
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context: run startup checks before the app starts serving.
    """
    # --- startup logic ---
    data_dir = store.data_dir
    if not data_dir.exists():
        data_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Created data directory %s", data_dir)

    coins_path = data_dir / settings.COINS_FILE
    if not coins_path.exists():
        logger.warning(
            "Coin catalog not found at %s; watchlist entries will show raw ids (run scripts/init_db.py to create it).",
            coins_path,
        )
    else:
        logger.info("Found coin catalog: %s", coins_path)

    if not settings.admin_emails:
        logger.warning("ADMIN_EMAILS is empty; nobody can open the admin page.")
    else:
        logger.info("Admin allow-list has %d entries", len(settings.admin_emails))

    yield
    # --- shutdown logic ---
    logger.info("Shutting down Crypto Admin")
app = FastAPI(title="Crypto Admin", version="0.1.0", lifespan=lifespan)
configure_cors(app)
add_security_headers(app)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

app.include_router(admin_routes.router)


@app.get("/", tags=["root"])
async def root():
    return {"status": "ok", "service": "Crypto Admin"}


@app.get("/admin", include_in_schema=False)
async def admin_index(
    request: Request,
    ctx: AdminContext = Depends(get_context),
    registry: PageRegistry = Depends(get_registry),
):
    """
    Admin page. Anonymous and non-allow-listed users get the denial view
    (status 200). No page state is kept for them and the page itself reads
    nothing; the upstream context still loads a signed-in user's own watchlist.
    """
    view = {"is_admin": False}
    if registry.is_authorized(ctx.user):
        view = await registry.page_for(ctx.user.uid).render(ctx)
    return templates.TemplateResponse(
        request,
        "admin.html",
        {"view": view, "alerts": [a.to_dict() for a in ctx.alerts.history]},
    )
