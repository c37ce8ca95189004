import os

from cryptoadmin.api import deps as app_deps
from cryptoadmin.database import store as file_store


def test_root_health(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "service": "Crypto Admin"}


def test_admin_page_denies_anonymous_and_non_admin(client, auth_header):
    resp = client.get("/admin")
    assert resp.status_code == 200
    assert "Access denied" in resp.text
    assert resp.headers["Cache-Control"] == "no-store"

    resp = client.get("/admin", headers=auth_header("u1", "someone@example.com"))
    assert resp.status_code == 200
    assert "Access denied" in resp.text
    assert "Admin Panel</h1>" not in resp.text


def test_admin_page_renders_panels_for_admin(client, admin_header, seed_coins):
    seed_coins()
    file_store.set_sync("settings", "app", {"announcement": "Welcome back"})
    file_store.set_sync("watchlist", "admin-uid", {"coins": ["bitcoin"]})

    resp = client.get("/admin", headers=admin_header)
    assert resp.status_code == 200
    assert "Access denied" not in resp.text
    assert "Loaded coins: 2" in resp.text
    assert "My watchlist: 1" in resp.text
    assert "Welcome back" in resp.text
    assert "No data fetched yet." in resp.text


def test_admin_page_accepts_cookie_token(client, token_for):
    client.cookies.set("access_token", token_for("admin-uid", "admin@example.com"))
    resp = client.get("/admin")
    assert "Access denied" not in resp.text


def test_api_requires_admin(client, auth_header, token_for):
    assert client.get("/api/admin/view").status_code == 401
    # token signed with the wrong secret counts as anonymous
    bad = {"Authorization": f"Bearer {token_for('admin-uid', 'admin@example.com', secret='other')}"}
    assert client.get("/api/admin/view", headers=bad).status_code == 401
    resp = client.post("/api/admin/broadcast", headers=auth_header("u1", "someone@example.com"))
    assert resp.status_code == 403


def test_view_and_broadcast(client, admin_header):
    resp = client.get("/api/admin/view", headers=admin_header)
    assert resp.status_code == 200, resp.text
    view = resp.json()
    assert view["is_admin"] is True
    assert view["announcement"]["state"] == "ready"

    resp = client.post("/api/admin/broadcast", headers=admin_header)
    assert resp.status_code == 200
    assert resp.json()["alerts"] == [{"open": True, "type": "success", "message": "Broadcast from Admin"}]


def test_announcement_edit_save_and_clear(client, admin_header):
    file_store.set_sync("settings", "app", {"announcement": "", "min_version": "2.1"})

    resp = client.put("/api/admin/announcement", json={"announcement": "Maintenance at 5pm"}, headers=admin_header)
    assert resp.status_code == 200, resp.text
    assert resp.json()["view"]["announcement"]["text"] == "Maintenance at 5pm"
    # editing alone does not write
    assert file_store.get_sync("settings", "app").data["announcement"] == ""

    resp = client.post("/api/admin/announcement/save", headers=admin_header)
    assert resp.status_code == 200, resp.text
    assert resp.json()["alerts"][-1]["message"] == "Announcement saved"
    assert file_store.get_sync("settings", "app").data == {"announcement": "Maintenance at 5pm", "min_version": "2.1"}

    resp = client.post("/api/admin/announcement/save", json={"announcement": "Back online"}, headers=admin_header)
    assert resp.status_code == 200, resp.text
    assert file_store.get_sync("settings", "app").data["announcement"] == "Back online"

    resp = client.delete("/api/admin/announcement", headers=admin_header)
    assert resp.status_code == 200
    body = resp.json()
    assert body["alerts"][-1]["message"] == "Announcement cleared"
    assert body["view"]["announcement"]["text"] == ""

    resp = client.get("/api/admin/announcement", headers=admin_header)
    assert resp.json() == {"state": "ready", "loading": False, "text": ""}


def test_watchlist_tools_flow(client, admin_header, seed_coins):
    seed_coins()
    file_store.set_sync("watchlist", "u1", {"coins": ["bitcoin", "ethereum", "mystery"]})

    resp = client.put("/api/admin/target", json={"uid": "u1"}, headers=admin_header)
    assert resp.status_code == 200
    assert resp.json()["view"]["watchlist"]["fetched"] is False

    resp = client.post("/api/admin/watchlists/u1/fetch", headers=admin_header)
    assert resp.status_code == 200, resp.text
    items = resp.json()["view"]["watchlist"]["items"]
    assert [i["label"] for i in items] == ["Bitcoin (BTC)", "Ethereum (ETH)", "mystery"]

    resp = client.delete("/api/admin/watchlists/u1/coins/bitcoin", headers=admin_header)
    assert resp.status_code == 200
    assert resp.json()["alerts"][-1]["message"] == "Removed bitcoin from u1"
    assert file_store.get_sync("watchlist", "u1").data["coins"] == ["ethereum", "mystery"]

    resp = client.delete("/api/admin/watchlists/u1", headers=admin_header)
    assert resp.status_code == 200
    body = resp.json()
    assert body["alerts"][-1]["message"] == "Cleared watchlist for u1"
    assert body["view"]["watchlist"]["items"] == []
    assert body["view"]["watchlist"]["fetched"] is True
    assert file_store.get_sync("watchlist", "u1").data["coins"] == []


def test_store_failure_is_reported_as_alert(client, admin_header, temp_data_dir):
    # a watchlist file without the document id column cannot be read or written
    (temp_data_dir / "watchlist.csv").write_text("name\nx\n", encoding="utf-8")
    resp = client.post("/api/admin/watchlists/u1/fetch", headers=admin_header)
    assert resp.status_code == 200
    alerts = resp.json()["alerts"]
    assert len(alerts) == 1
    assert alerts[0]["type"] == "error"
    assert resp.json()["view"]["watchlist"]["loading"] is False


def test_non_admin_visits_keep_no_page_state(client, auth_header):
    for i in range(3):
        resp = client.get("/admin", headers=auth_header(f"user-{i}", "someone@example.com"))
        assert "Access denied" in resp.text
    assert app_deps.get_registry()._pages == {}


def test_coin_catalog_reused_until_file_changes(seed_coins):
    path = seed_coins()
    first = app_deps.load_catalog(file_store)
    assert [c.id for c in first] == ["bitcoin", "ethereum"]
    assert app_deps.load_catalog(file_store) is first

    seed_coins([{"id": "solana", "name": "Solana", "symbol": "sol"}])
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))
    second = app_deps.load_catalog(file_store)
    assert second is not first
    assert [c.id for c in second] == ["solana"]


def test_fetch_watchlist_for_na_like_uid(client, admin_header):
    file_store.set_sync("watchlist", "NA", {"coins": ["bitcoin"]})
    file_store.set_sync("watchlist", "NA", {"coins": ["ethereum"]})

    client.put("/api/admin/target", json={"uid": "NA"}, headers=admin_header)
    resp = client.post("/api/admin/watchlists/NA/fetch", headers=admin_header)
    assert resp.status_code == 200, resp.text
    assert [i["id"] for i in resp.json()["view"]["watchlist"]["items"]] == ["ethereum"]
