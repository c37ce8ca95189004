from fastapi.middleware.cors import CORSMiddleware

from cryptoadmin.config import settings


def configure_cors(app):
    # the admin page sends the identity token as a cookie, so origins must be explicit
    origins = settings.cors_origins or ["http://localhost:3000"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
        max_age=86400,
    )
