from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from bulletin.config import get_settings
from bulletin.core.logging_config import setup_logging
from bulletin.routers import admin_announcements, announcements

settings = get_settings()
setup_logging()

app = FastAPI(title="Bulletin API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(announcements.router)
app.include_router(announcements.attachments_router)
app.include_router(admin_announcements.router)


@app.get("/")
def root():
    return {"message": "Bulletin API", "docs": "/docs"}
